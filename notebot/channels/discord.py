"""Discord channel implementation using discord.py."""

from typing import TYPE_CHECKING, Any

import discord
from loguru import logger

from notebot.bus.events import OutboundMessage
from notebot.bus.queue import MessageBus
from notebot.channels.base import BaseChannel, split_content, welcome_message
from notebot.config.schema import DiscordConfig

if TYPE_CHECKING:
    from discord import Message as DiscordMessage

START_COMMAND = "!start"


class DiscordChannel(BaseChannel):
    """
    Discord channel over the gateway WebSocket.

    Answers direct messages and @mentions in servers. Replies are threaded
    onto the message that triggered them and split to fit Discord's limit.
    """

    name = "discord"

    def __init__(self, config: DiscordConfig, bus: MessageBus):
        super().__init__(config, bus)
        self.config: DiscordConfig = config
        self._client: discord.Client | None = None

    def _build_client(self) -> discord.Client:
        intents = discord.Intents.default()
        intents.message_content = True  # Privileged; must be enabled in the developer portal
        intents.dm_messages = True
        client = discord.Client(intents=intents)

        @client.event
        async def on_ready() -> None:
            logger.info(f"Discord bot {client.user} connected")

        @client.event
        async def on_message(message: "DiscordMessage") -> None:
            await self._on_message(message)

        return client

    async def start(self) -> None:
        """Log in and process gateway events until stopped."""
        if not self.config.token:
            logger.error("Discord bot token not configured")
            return

        self._client = self._build_client()
        self._running = True
        logger.info("Starting Discord bot...")

        try:
            await self._client.start(self.config.token)
        except discord.LoginFailure:
            logger.error("Discord login failed, check channels.discord.token")
        except discord.PrivilegedIntentsRequired:
            logger.error("Enable the MESSAGE CONTENT intent in the Discord Developer Portal")
        finally:
            self._running = False

    async def stop(self) -> None:
        self._running = False
        if self._client:
            logger.info("Stopping Discord bot...")
            await self._client.close()
            self._client = None

    async def send(self, msg: OutboundMessage) -> None:
        """Send ``msg``, replying to ``msg.reply_to`` with the first chunk."""
        if not self._client or not self._client.is_ready():
            logger.warning("Discord bot not running")
            return

        try:
            channel_id = int(msg.chat_id)
        except ValueError:
            logger.error(f"Invalid Discord channel id: {msg.chat_id}")
            return

        try:
            channel = self._client.get_channel(channel_id) or await self._client.fetch_channel(
                channel_id
            )
            reference = self._reference(channel_id, msg.reply_to)
            for chunk in split_content(msg.content, self.config.message_max_length):
                kwargs: dict[str, Any] = {}
                if reference is not None:
                    kwargs["reference"] = reference
                    reference = None
                await channel.send(chunk, **kwargs)
        except discord.Forbidden:
            logger.error(f"Permission denied sending to Discord channel {msg.chat_id}")
        except discord.NotFound:
            logger.error(f"Discord channel {msg.chat_id} not found")
        except discord.HTTPException as e:
            logger.error(f"Error sending Discord message: {e}")

    @staticmethod
    def _reference(channel_id: int, reply_to: str | None) -> discord.MessageReference | None:
        if not reply_to or not reply_to.isdigit():
            return None
        return discord.MessageReference(
            message_id=int(reply_to), channel_id=channel_id, fail_if_not_exists=False
        )

    def _addressed_to_bot(self, message: "DiscordMessage") -> bool:
        if not self._client or not self._client.user:
            return False
        return message.guild is None or self._client.user.mentioned_in(message)

    def _strip_mentions(self, content: str) -> str:
        if self._client and self._client.user:
            bot_id = self._client.user.id
            content = content.replace(f"<@{bot_id}>", "").replace(f"<@!{bot_id}>", "")
        return content.strip()

    async def _on_message(self, message: "DiscordMessage") -> None:
        if message.author.bot or not self._addressed_to_bot(message):
            return

        content = self._strip_mentions(message.content)
        if not content:
            return

        sender_id = f"{message.author.id}|{message.author.name}"
        display_name = message.author.display_name or message.author.name

        if content.startswith(START_COMMAND):
            if self.is_allowed(sender_id):
                await message.reply(welcome_message(display_name))
            return

        logger.debug(f"Discord message from {sender_id}: {content[:50]}")
        await self._handle_message(
            sender_id=sender_id,
            chat_id=str(message.channel.id),
            content=content,
            display_name=display_name,
            metadata={
                "message_id": str(message.id),
                "guild_id": str(message.guild.id) if message.guild else None,
            },
        )
