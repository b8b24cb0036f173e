"""Tests for the agent tool-calling loop."""

import asyncio
import json

import pytest

from notebot.agent.errors import ErrorCategory
from notebot.agent.loop import APOLOGY_MESSAGE, AgentLoop
from notebot.bus.events import InboundMessage
from notebot.bus.queue import MessageBus
from notebot.errors import ProviderError, TurnLimitExceeded
from notebot.session.history import ConversationHistoryManager


def invoke(name: str, **params: str) -> str:
    body = "".join(f'<parameter name="{k}">{v}</parameter>' for k, v in params.items())
    return f'<invoke name="{name}">{body}</invoke>'


def make_agent(provider, note_store, error_logger, **kwargs) -> AgentLoop:
    return AgentLoop(
        bus=MessageBus(),
        provider=provider,
        notes=note_store,
        error_logger=error_logger,
        **kwargs,
    )


@pytest.mark.asyncio
async def test_complete_terminates_after_one_completion(note_store, error_logger, scripted_provider):
    provider = scripted_provider([invoke("complete")])
    agent = make_agent(provider, note_store, error_logger)

    replies = await agent.process_direct("hello", user_id="u1")

    assert replies == []
    assert len(provider.calls) == 1
    history = agent.history.get("u1")
    assert [m["role"] for m in history] == ["system", "user", "assistant"]


@pytest.mark.asyncio
async def test_save_reply_complete_flow(note_store, content_store, error_logger, scripted_provider):
    content_store.next_cids = ["cid-abc"]
    provider = scripted_provider(
        [
            invoke("saveNote", title="Locker", content="My locker code is 4812", tags="codes,gym"),
            invoke("replyUser", message="Saved your locker code!") + invoke("complete"),
        ]
    )
    agent = make_agent(provider, note_store, error_logger)

    replies = await agent.process_direct("remember my locker code is 4812", user_id="u1")

    assert replies == ["Saved your locker code!"]
    assert len(provider.calls) == 2
    # Second completion saw the saveNote result as a system message
    second_call = provider.calls[1]
    assert second_call[-1] == {"role": "system", "content": json.dumps("cid-abc")}
    assert [m.cid for m in note_store.list_notes("u1")] == ["cid-abc"]
    assert note_store.list_notes("u1")[0].tags == ("codes", "gym")


@pytest.mark.asyncio
async def test_calls_after_complete_are_discarded(note_store, error_logger, scripted_provider):
    provider = scripted_provider(
        [invoke("replyUser", message="a") + invoke("complete") + invoke("replyUser", message="b")]
    )
    agent = make_agent(provider, note_store, error_logger)
    assert await agent.process_direct("hi", user_id="u1") == ["a"]


@pytest.mark.asyncio
async def test_turn_without_calls_continues(note_store, error_logger, scripted_provider):
    provider = scripted_provider(["I forgot the markup", invoke("complete")])
    agent = make_agent(provider, note_store, error_logger)

    await agent.process_direct("hi", user_id="u1")
    assert len(provider.calls) == 2


@pytest.mark.asyncio
async def test_turn_limit_sends_apology(note_store, error_logger, scripted_provider):
    provider = scripted_provider([invoke("listNotes")] * 3)
    agent = make_agent(provider, note_store, error_logger, max_turns=3)

    replies = await agent.process_direct("loop forever", user_id="u1")

    assert replies == [APOLOGY_MESSAGE]
    assert len(provider.calls) == 3
    errors = error_logger.get_recent_errors()
    assert errors[0]["category"] == ErrorCategory.TURN_LIMIT.value
    assert errors[0]["context"]["turn"] == 3


@pytest.mark.asyncio
async def test_run_turns_raises_turn_limit(note_store, error_logger, scripted_provider):
    provider = scripted_provider(["nothing"] * 2)
    agent = make_agent(provider, note_store, error_logger, max_turns=2)
    history = [{"role": "user", "content": "hi"}]

    with pytest.raises(TurnLimitExceeded):
        await agent.run_turns(history, agent.build_tools("u1", _noop_send), "Ann")
    # Partial history retained
    assert [m["role"] for m in history] == ["system", "user", "assistant", "assistant"]


async def _noop_send(text: str) -> None:
    pass


@pytest.mark.asyncio
async def test_unknown_tool_is_skipped(note_store, error_logger, scripted_provider):
    provider = scripted_provider(
        [invoke("launchRockets") + invoke("replyUser", message="ok") + invoke("complete")]
    )
    agent = make_agent(provider, note_store, error_logger)

    assert await agent.process_direct("hi", user_id="u1") == ["ok"]
    categories = [e["category"] for e in error_logger.get_recent_errors()]
    assert categories == [ErrorCategory.UNKNOWN_TOOL.value]


@pytest.mark.asyncio
async def test_tool_error_sends_apology(note_store, content_store, error_logger, scripted_provider):
    content_store.fail_upload = True
    provider = scripted_provider([invoke("saveNote", title="t", content="c", tags="x")])
    agent = make_agent(provider, note_store, error_logger)

    replies = await agent.process_direct("save this", user_id="u1")

    assert replies == [APOLOGY_MESSAGE]
    error = error_logger.get_recent_errors()[0]
    assert error["category"] == ErrorCategory.STORAGE.value
    assert error["tool_name"] == "saveNote"
    assert "upload failed" not in replies[0]


@pytest.mark.asyncio
async def test_provider_error_sends_apology(note_store, error_logger, scripted_provider):
    provider = scripted_provider([ProviderError("quota exceeded")])
    agent = make_agent(provider, note_store, error_logger)

    assert await agent.process_direct("hi", user_id="u1") == [APOLOGY_MESSAGE]
    assert error_logger.get_recent_errors()[0]["category"] == ErrorCategory.PROVIDER.value


@pytest.mark.asyncio
async def test_system_prompt_lists_tools_and_name(note_store, error_logger, scripted_provider):
    provider = scripted_provider([invoke("complete")])
    agent = make_agent(provider, note_store, error_logger)

    await agent.handle_message("u1", "Ann", "hi", _noop_send)

    prompt = provider.calls[0][0]["content"]
    assert provider.calls[0][0]["role"] == "system"
    assert "Ann" in prompt
    for name in ["saveNote", "listNotes", "searchNotes", "viewNote", "replyUser", "complete"]:
        assert f'<invoke name="{name}">' in prompt


@pytest.mark.asyncio
async def test_history_is_bounded_across_messages(note_store, error_logger, scripted_provider):
    provider = scripted_provider([invoke("complete")] * 10)
    agent = make_agent(
        provider, note_store, error_logger, history=ConversationHistoryManager(max_history=5)
    )
    for i in range(10):
        await agent.process_direct(f"message {i}", user_id="u1")

    history = agent.history.get("u1")
    assert len(history) <= 5
    assert history[0]["role"] == "system"


@pytest.mark.asyncio
async def test_messages_from_one_user_are_serialized(note_store, error_logger, scripted_provider):
    active = 0
    peak = 0

    class SlowProvider(scripted_provider):
        async def chat(self, messages, model=None, max_tokens=None, temperature=None):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            return await super().chat(messages)

    provider = SlowProvider([invoke("complete")] * 3)
    agent = make_agent(provider, note_store, error_logger)

    await asyncio.gather(
        *(agent.handle_message("u1", "Ann", f"m{i}", _noop_send) for i in range(3))
    )
    assert peak == 1


@pytest.mark.asyncio
async def test_run_routes_replies_to_bus(note_store, error_logger, scripted_provider):
    provider = scripted_provider([invoke("replyUser", message="hello there") + invoke("complete")])
    bus = MessageBus()
    agent = AgentLoop(bus=bus, provider=provider, notes=note_store, error_logger=error_logger)

    runner = asyncio.create_task(agent.run())
    try:
        await bus.publish_inbound(
            InboundMessage(
                channel="telegram",
                sender_id="42|ann",
                chat_id="1001",
                content="hi",
                display_name="Ann",
                metadata={"message_id": "77"},
            )
        )
        outbound = await asyncio.wait_for(bus.consume_outbound(), timeout=2.0)
    finally:
        await agent.stop()
        await runner

    assert outbound.channel == "telegram"
    assert outbound.chat_id == "1001"
    assert outbound.content == "hello there"
    assert outbound.reply_to == "77"
    assert "telegram_42" in agent.history.users
