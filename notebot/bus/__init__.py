"""Message bus connecting channels and the agent."""

from notebot.bus.events import InboundMessage, OutboundMessage
from notebot.bus.queue import MessageBus

__all__ = ["InboundMessage", "MessageBus", "OutboundMessage"]
