"""Telegram channel implementation using python-telegram-bot."""

import asyncio
import re

from loguru import logger
from telegram import ReplyParameters, Update
from telegram.constants import ChatAction, ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from notebot.bus.events import OutboundMessage
from notebot.bus.queue import MessageBus
from notebot.channels.base import BaseChannel, split_content, welcome_message
from notebot.config.schema import TelegramConfig

# Telegram caps messages at 4096 chars; leave room for the HTML tags
TELEGRAM_MAX_LENGTH = 4000


def _markdown_to_telegram_html(text: str) -> str:
    """
    Convert markdown to Telegram-safe HTML.
    """
    if not text:
        return ""

    # 1. Extract and protect code blocks
    code_blocks: list[str] = []

    def save_code_block(m: re.Match) -> str:
        code_blocks.append(m.group(1))
        return f"\x00CB{len(code_blocks) - 1}\x00"

    text = re.sub(r"```[\w]*\n?([\s\S]*?)```", save_code_block, text)

    # 2. Extract and protect inline code
    inline_codes: list[str] = []

    def save_inline_code(m: re.Match) -> str:
        inline_codes.append(m.group(1))
        return f"\x00IC{len(inline_codes) - 1}\x00"

    text = re.sub(r"`([^`]+)`", save_inline_code, text)

    # 3. Headers # Title -> just the title text
    text = re.sub(r"^#{1,6}\s+(.+)$", r"\1", text, flags=re.MULTILINE)

    # 4. Blockquotes > text -> just the text (before HTML escaping)
    text = re.sub(r"^>\s*(.*)$", r"\1", text, flags=re.MULTILINE)

    # 5. Escape HTML special characters
    text = text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")

    # 6. Links [text](url), before bold/italic to handle nested cases
    text = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r'<a href="\2">\1</a>', text)

    # 7. Bold **text** or __text__
    text = re.sub(r"\*\*(.+?)\*\*", r"<b>\1</b>", text)
    text = re.sub(r"__(.+?)__", r"<b>\1</b>", text)

    # 8. Italic _text_ (not inside words like some_var_name)
    text = re.sub(r"(?<![a-zA-Z0-9])_([^_]+)_(?![a-zA-Z0-9])", r"<i>\1</i>", text)

    # 9. Strikethrough ~~text~~
    text = re.sub(r"~~(.+?)~~", r"<s>\1</s>", text)

    # 10. Bullet lists - item -> • item
    text = re.sub(r"^[-*]\s+", "• ", text, flags=re.MULTILINE)

    # 11. Restore inline code
    for i, code in enumerate(inline_codes):
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        text = text.replace(f"\x00IC{i}\x00", f"<code>{escaped}</code>")

    # 12. Restore code blocks
    for i, code in enumerate(code_blocks):
        escaped = code.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")
        text = text.replace(f"\x00CB{i}\x00", f"<pre><code>{escaped}</code></pre>")

    return text


class TelegramChannel(BaseChannel):
    """
    Telegram channel using long polling (no webhook or public address needed).

    Replies are sent as HTML converted from the agent's Markdown, threaded
    onto the user's message and split at Telegram's message size limit.
    """

    name = "telegram"

    def __init__(self, config: TelegramConfig, bus: MessageBus):
        super().__init__(config, bus)
        self.config: TelegramConfig = config
        self._app: Application | None = None

    async def start(self) -> None:
        """Connect and poll for updates until stopped."""
        if not self.config.token:
            logger.error("Telegram bot token not configured")
            return

        builder = Application.builder().token(self.config.token)
        if self.config.proxy:
            builder = builder.proxy(self.config.proxy).get_updates_proxy(self.config.proxy)
        self._app = builder.build()
        self._app.add_handler(CommandHandler("start", self._on_start))
        self._app.add_handler(MessageHandler(filters.TEXT & ~filters.COMMAND, self._on_message))

        await self._app.initialize()
        await self._app.start()
        me = await self._app.bot.get_me()
        logger.info(f"Telegram bot @{me.username} connected (polling)")

        # Messages sent while offline are not replayed
        await self._app.updater.start_polling(allowed_updates=["message"], drop_pending_updates=True)

        self._running = True
        while self._running:
            await asyncio.sleep(1)

    async def stop(self) -> None:
        self._running = False
        if self._app:
            logger.info("Stopping Telegram bot...")
            await self._app.updater.stop()
            await self._app.stop()
            await self._app.shutdown()
            self._app = None

    async def send(self, msg: OutboundMessage) -> None:
        """Send ``msg`` as HTML, replying to ``msg.reply_to`` with the first chunk."""
        if not self._app:
            logger.warning("Telegram bot not running")
            return

        try:
            chat_id = int(msg.chat_id)
        except ValueError:
            logger.error(f"Invalid Telegram chat id: {msg.chat_id}")
            return

        reply = None
        if msg.reply_to and msg.reply_to.isdigit():
            reply = ReplyParameters(message_id=int(msg.reply_to), allow_sending_without_reply=True)

        for chunk in split_content(msg.content, TELEGRAM_MAX_LENGTH):
            await self._send_chunk(chat_id, chunk, reply)
            reply = None

    async def _send_chunk(self, chat_id: int, text: str, reply: ReplyParameters | None) -> None:
        bot = self._app.bot
        try:
            await bot.send_message(
                chat_id=chat_id,
                text=_markdown_to_telegram_html(text),
                parse_mode=ParseMode.HTML,
                reply_parameters=reply,
            )
        except TelegramError as e:
            # Usually unbalanced markup from the model; resend as plain text
            logger.warning(f"HTML send failed, falling back to plain text: {e}")
            try:
                await bot.send_message(chat_id=chat_id, text=text, reply_parameters=reply)
            except TelegramError as e2:
                logger.error(f"Error sending Telegram message: {e2}")

    async def _on_start(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        if not update.message or not update.effective_user:
            return
        await update.message.reply_text(
            _markdown_to_telegram_html(welcome_message(update.effective_user.first_name)),
            parse_mode=ParseMode.HTML,
        )

    async def _on_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        message = update.message
        user = update.effective_user
        if not message or not user or not (message.text or "").strip():
            return

        # Numeric id is stable; the username is kept for allow-list matching
        sender_id = f"{user.id}|{user.username}" if user.username else str(user.id)
        logger.debug(f"Telegram message from {sender_id}: {message.text[:50]}")

        try:
            await context.bot.send_chat_action(chat_id=message.chat_id, action=ChatAction.TYPING)
        except TelegramError as e:
            logger.debug(f"Could not send typing action: {e}")

        await self._handle_message(
            sender_id=sender_id,
            chat_id=str(message.chat_id),
            content=message.text,
            display_name=user.first_name or user.username or "User",
            metadata={
                "message_id": str(message.message_id),
                "is_group": message.chat.type != "private",
            },
        )
