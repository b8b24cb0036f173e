"""Chat channels."""

from notebot.channels.base import BaseChannel
from notebot.channels.manager import ChannelManager

__all__ = ["BaseChannel", "ChannelManager"]
