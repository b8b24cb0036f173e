"""Agent loop: the core processing engine."""

import asyncio
import json
from collections import OrderedDict
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Any

from loguru import logger

from notebot.agent.context import ContextBuilder
from notebot.agent.errors import ErrorLogger
from notebot.agent.parser import ToolCallParser
from notebot.agent.tools.base import TASK_COMPLETE
from notebot.agent.tools.complete import CompleteTool
from notebot.agent.tools.notes import ListNotesTool, SaveNoteTool, SearchNotesTool, ViewNoteTool
from notebot.agent.tools.registry import ToolRegistry
from notebot.agent.tools.reply import ReplyUserTool
from notebot.bus.events import InboundMessage, OutboundMessage
from notebot.bus.queue import MessageBus
from notebot.errors import (
    NotebotError,
    ProviderError,
    StorageError,
    ToolExecutionError,
    TurnLimitExceeded,
)
from notebot.notes.store import NoteStore
from notebot.providers.base import LLMProvider
from notebot.session.history import ConversationHistoryManager, Message

APOLOGY_MESSAGE = (
    "Sorry, I encountered an error while processing your message. Please try again later."
)

# Max cached per-user locks before LRU eviction
MAX_USER_LOCKS = 1000

SendFn = Callable[[str], Awaitable[None]]


class TurnState(Enum):
    AWAITING_RESPONSE = "awaiting_response"
    PARSING_CALLS = "parsing_calls"
    EXECUTING_CALLS = "executing_calls"
    TERMINATED = "terminated"


class AgentLoop:
    """
    The agent loop is the core processing engine.

    For each user message it:
    1. Appends the message to the user's history
    2. Renders the system prompt with the tools bound to that user
    3. Calls the LLM and parses tool calls out of its reply
    4. Executes the calls in order, feeding results back as system messages
    5. Repeats until a tool signals completion or ``max_turns`` is reached

    Messages from different users are processed concurrently; one user's
    messages are processed one at a time.
    """

    def __init__(
        self,
        bus: MessageBus,
        provider: LLMProvider,
        notes: NoteStore,
        history: ConversationHistoryManager | None = None,
        context: ContextBuilder | None = None,
        max_turns: int = 10,
        search_limit: int = 5,
        error_logger: ErrorLogger | None = None,
    ):
        if max_turns < 1:
            raise ValueError(f"max_turns must be >= 1, got {max_turns}")
        self.bus = bus
        self.provider = provider
        self.notes = notes
        self.history = history or ConversationHistoryManager()
        self.context = context or ContextBuilder()
        self.max_turns = max_turns
        self.search_limit = search_limit
        self.error_logger = error_logger
        self.parser = ToolCallParser(error_logger)

        self._running = False
        self._user_locks: OrderedDict[str, asyncio.Lock] = OrderedDict()
        self._tasks: set[asyncio.Task] = set()

    def _get_user_lock(self, user_id: str) -> asyncio.Lock:
        """Per-user lock with LRU eviction to prevent unbounded memory."""
        if user_id in self._user_locks:
            self._user_locks.move_to_end(user_id)
            return self._user_locks[user_id]

        while len(self._user_locks) >= MAX_USER_LOCKS:
            oldest_key, oldest_lock = next(iter(self._user_locks.items()))
            if oldest_lock.locked():
                self._user_locks.move_to_end(oldest_key)
                # All locks held: allow growing past the cap
                if all(lk.locked() for lk in self._user_locks.values()):
                    break
                continue
            del self._user_locks[oldest_key]

        lock = asyncio.Lock()
        self._user_locks[user_id] = lock
        return lock

    def build_tools(self, user_id: str, send: SendFn) -> ToolRegistry:
        """Create the tool set for one request, bound to ``user_id`` and ``send``."""
        tools = ToolRegistry(self.error_logger)
        tools.register(SaveNoteTool(self.notes, user_id))
        tools.register(ListNotesTool(self.notes, user_id))
        tools.register(SearchNotesTool(self.notes, user_id, limit=self.search_limit))
        tools.register(ViewNoteTool(self.notes, user_id))
        tools.register(ReplyUserTool(send))
        tools.register(CompleteTool())
        return tools

    async def run_turns(
        self,
        history: list[Message],
        tools: ToolRegistry,
        display_name: str = "",
        user_id: str | None = None,
    ) -> int:
        """
        Drive completions and tool calls over ``history`` until completion.

        ``history`` is mutated in place and keeps whatever was appended if an
        error escapes.

        Returns:
            The number of completions made.

        Raises:
            TurnLimitExceeded: after ``max_turns`` completions without completion.
            ToolExecutionError: if a tool raised.
            ProviderError: if the completion call failed.
        """
        turn = 0
        state = TurnState.AWAITING_RESPONSE
        try:
            while True:
                if turn >= self.max_turns:
                    raise TurnLimitExceeded(self.max_turns)
                turn += 1

                self.history.apply_system_prompt(
                    history, self.context.build_system_prompt(tools.tools, display_name)
                )
                logger.debug(f"Turn {turn} [{state.value}] with {len(history)} messages")
                response = await self.provider.complete(history)
                self.history.append(history, {"role": "assistant", "content": response})

                state = TurnState.PARSING_CALLS
                calls = self.parser.parse(response)
                logger.debug(f"Turn {turn} [{state.value}] found {len(calls)} tool calls")

                state = TurnState.EXECUTING_CALLS
                for call in calls:
                    result = await tools.dispatch(call, user_id=user_id)
                    if result is TASK_COMPLETE:
                        state = TurnState.TERMINATED
                        logger.debug(f"Turn {turn} [{state.value}] after {call.tool_name}")
                        return turn
                    if result is None:
                        continue
                    self.history.append(
                        history,
                        {"role": "system", "content": json.dumps(result, ensure_ascii=False)},
                    )

                state = TurnState.AWAITING_RESPONSE
        except NotebotError as e:
            if e.turn is None:
                e.turn = turn
            raise

    async def handle_message(
        self,
        user_id: str,
        display_name: str,
        text: str,
        send: SendFn,
    ) -> None:
        """
        Process one user message end to end.

        Failures during the request are logged and answered with a generic
        apology through ``send``; internal details never reach the user.
        """
        async with self._get_user_lock(user_id):
            logger.info(f"Processing message from {user_id}")
            self.history.push(user_id, {"role": "user", "content": text})
            tools = self.build_tools(user_id, send)
            self.history.ensure_system_prompt(
                user_id, self.context.build_system_prompt(tools.tools, display_name)
            )
            history = self.history.get(user_id)

            try:
                turns = await self.run_turns(history, tools, display_name, user_id=user_id)
                logger.info(f"Finished message from {user_id} in {turns} turns")
            except (ToolExecutionError, ProviderError, StorageError, TurnLimitExceeded) as e:
                self._report(e, user_id, {"turn": e.turn, "history_length": len(history)})
                await send(APOLOGY_MESSAGE)

    def _report(self, error: BaseException, user_id: str, context: dict[str, Any]) -> None:
        if self.error_logger:
            self.error_logger.log_exception(error, user_id=user_id, context=context)
        else:
            logger.error(f"Error processing message from {user_id} ({context}): {error}")

    async def _process_message(self, msg: InboundMessage) -> None:
        async def send(text: str) -> None:
            await self.bus.publish_outbound(
                OutboundMessage(
                    channel=msg.channel,
                    chat_id=msg.chat_id,
                    content=text,
                    reply_to=msg.metadata.get("message_id"),
                    metadata=msg.metadata,
                )
            )

        try:
            await self.handle_message(
                msg.user_key, msg.display_name or msg.sender_id, msg.content, send
            )
        except Exception as e:
            self._report(e, msg.user_key, {"channel": msg.channel, "chat_id": msg.chat_id})
            await send(APOLOGY_MESSAGE)

    async def run(self) -> None:
        """Run the agent loop, processing messages from the bus."""
        self._running = True
        logger.info("Agent loop started")

        while self._running:
            try:
                msg = await asyncio.wait_for(self.bus.consume_inbound(), timeout=1.0)
            except asyncio.TimeoutError:
                continue

            task = asyncio.create_task(self._process_message(msg))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)

    async def stop(self) -> None:
        """Stop the agent loop and cancel in-flight requests."""
        self._running = False
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        logger.info("Agent loop stopping")

    async def process_direct(
        self,
        content: str,
        user_id: str = "cli_user",
        display_name: str = "User",
    ) -> list[str]:
        """
        Process a message directly (for CLI usage).

        Returns:
            The replies the agent sent, in order.
        """
        replies: list[str] = []

        async def send(text: str) -> None:
            replies.append(text)

        await self.handle_message(user_id, display_name, content, send)
        return replies
