"""Base channel interface for chat platforms."""

from abc import ABC, abstractmethod
from typing import Any

from loguru import logger

from notebot.bus.events import InboundMessage, OutboundMessage
from notebot.bus.queue import MessageBus


class BaseChannel(ABC):
    """
    Abstract base class for chat channel implementations.

    Each channel (Telegram, Discord) implements this interface to
    integrate with the message bus.
    """

    name: str = "base"

    def __init__(self, config: Any, bus: MessageBus):
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """
        Start the channel and begin listening for messages.

        Long-running: connects to the platform and forwards incoming
        messages to the bus via ``_handle_message()``.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel and clean up resources."""

    @abstractmethod
    async def send(self, msg: OutboundMessage) -> None:
        """Send a message through this channel."""

    def is_allowed(self, sender_id: str) -> bool:
        """
        Check if a sender is allowed to use this bot.

        ``sender_id`` may be ``"<id>|<username>"``; either part matching an
        entry of ``allow_from`` grants access. An empty list allows everyone.
        """
        allow_list = getattr(self.config, "allow_from", [])
        if not allow_list:
            return True

        sender_str = str(sender_id)
        if sender_str in allow_list:
            return True
        return any(part and part in allow_list for part in sender_str.split("|"))

    async def _handle_message(
        self,
        sender_id: str,
        chat_id: str,
        content: str,
        display_name: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Check permissions and forward an incoming message to the bus."""
        if not self.is_allowed(sender_id):
            logger.warning(
                f"Access denied for sender {sender_id} on channel {self.name}. "
                f"Add them to allowFrom in config to grant access."
            )
            return

        await self.bus.publish_inbound(
            InboundMessage(
                channel=self.name,
                sender_id=str(sender_id),
                chat_id=str(chat_id),
                content=content,
                display_name=display_name,
                metadata=metadata or {},
            )
        )

    @property
    def is_running(self) -> bool:
        return self._running


def welcome_message(display_name: str) -> str:
    """Greeting sent in reply to a start command."""
    return (
        f"Hello **{display_name or 'there'}**!\n\n"
        "I'm your notes assistant. Tell me things worth remembering and I'll decide "
        "what to save; ask me later and I'll search your notes for the answer."
    )


def split_content(content: str, max_length: int) -> list[str]:
    """Split content into chunks of at most ``max_length`` at natural boundaries."""
    if len(content) <= max_length:
        return [content]

    chunks = []
    remaining = content

    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        split_point = max_length

        # Prefer a paragraph break, then a line break, then a sentence end
        newline_pos = remaining.rfind("\n\n", 0, max_length)
        if newline_pos > max_length // 2:
            split_point = newline_pos + 2
        else:
            newline_pos = remaining.rfind("\n", 0, max_length)
            if newline_pos > max_length // 2:
                split_point = newline_pos + 1
            else:
                for sep in [". ", "! ", "? "]:
                    pos = remaining.rfind(sep, 0, max_length)
                    if pos > max_length // 2:
                        split_point = pos + 2
                        break

        chunks.append(remaining[:split_point].rstrip())
        remaining = remaining[split_point:].lstrip()

    return chunks
