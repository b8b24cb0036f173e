"""Channel manager for coordinating chat channels."""

import asyncio
from typing import Any

from loguru import logger

from notebot.bus.queue import MessageBus
from notebot.channels.base import BaseChannel
from notebot.config.schema import Config


class ChannelManager:
    """
    Manages chat channels and coordinates message routing.

    Responsibilities:
    - Initialize enabled channels (Telegram, Discord)
    - Start/stop channels
    - Route outbound messages to the channel they belong to
    """

    def __init__(self, config: Config, bus: MessageBus):
        self.config = config
        self.bus = bus
        self.channels: dict[str, BaseChannel] = {}
        self._dispatch_task: asyncio.Task | None = None

        self._init_channels()

    def _init_channels(self) -> None:
        """Initialize channels based on config."""
        if self.config.channels.telegram.enabled:
            from notebot.channels.telegram import TelegramChannel

            self.channels["telegram"] = TelegramChannel(self.config.channels.telegram, self.bus)
            logger.info("Telegram channel enabled")

        if self.config.channels.discord.enabled:
            from notebot.channels.discord import DiscordChannel

            self.channels["discord"] = DiscordChannel(self.config.channels.discord, self.bus)
            logger.info("Discord channel enabled")

    def add_channel(self, channel: BaseChannel) -> None:
        """Register an already constructed channel."""
        self.channels[channel.name] = channel

    async def start_all(self) -> None:
        """Start all channels and the outbound dispatcher."""
        if not self.channels:
            logger.warning("No channels enabled")
            return

        self._dispatch_task = asyncio.create_task(self._dispatch_outbound())

        tasks = []
        for name, channel in self.channels.items():
            logger.info(f"Starting {name} channel...")
            tasks.append(asyncio.create_task(channel.start()))

        # Channels run until stopped
        await asyncio.gather(*tasks, return_exceptions=True)

    async def stop_all(self) -> None:
        """Stop all channels and the dispatcher."""
        logger.info("Stopping all channels...")

        if self._dispatch_task:
            self._dispatch_task.cancel()
            try:
                await self._dispatch_task
            except asyncio.CancelledError:
                pass

        for name, channel in self.channels.items():
            try:
                await channel.stop()
                logger.info(f"Stopped {name} channel")
            except Exception as e:
                logger.error(f"Error stopping {name}: {e}")

    async def _dispatch_outbound(self) -> None:
        """Deliver outbound messages to their channels."""
        logger.info("Outbound dispatcher started")

        while True:
            msg = await self.bus.consume_outbound()
            channel = self.channels.get(msg.channel)
            if channel is None:
                logger.warning(f"Dropping message for unknown channel: {msg.channel}")
                continue
            try:
                await channel.send(msg)
            except Exception as e:
                logger.error(f"Error sending to {msg.channel}: {e}")

    def get_channel(self, name: str) -> BaseChannel | None:
        return self.channels.get(name)

    def get_status(self) -> dict[str, Any]:
        """Get status of all channels."""
        return {
            name: {"enabled": True, "running": channel.is_running}
            for name, channel in self.channels.items()
        }

    @property
    def enabled_channels(self) -> list[str]:
        return list(self.channels.keys())
