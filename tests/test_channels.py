"""Tests for channel plumbing: access control, formatting and outbound dispatch."""

import asyncio

import pytest

from notebot.bus import InboundMessage, MessageBus, OutboundMessage
from notebot.channels.base import BaseChannel
from notebot.channels.base import split_content
from notebot.channels.discord import DiscordChannel
from notebot.channels.manager import ChannelManager
from notebot.channels.telegram import _markdown_to_telegram_html
from notebot.config.schema import Config, TelegramConfig


class RecordingChannel(BaseChannel):
    name = "test"

    def __init__(self, config, bus):
        super().__init__(config, bus)
        self.sent: list[OutboundMessage] = []

    async def start(self) -> None:
        self._running = True

    async def stop(self) -> None:
        self._running = False

    async def send(self, msg: OutboundMessage) -> None:
        self.sent.append(msg)


class TestAccessControl:
    def test_empty_allow_list_allows_everyone(self):
        channel = RecordingChannel(TelegramConfig(), MessageBus())
        assert channel.is_allowed("123|alice")

    def test_matches_id_or_username(self):
        channel = RecordingChannel(TelegramConfig(allow_from=["alice", "999"]), MessageBus())
        assert channel.is_allowed("123|alice")
        assert channel.is_allowed("999")
        assert not channel.is_allowed("123|bob")

    @pytest.mark.asyncio
    async def test_denied_messages_never_reach_the_bus(self):
        bus = MessageBus()
        channel = RecordingChannel(TelegramConfig(allow_from=["1"]), bus)
        await channel._handle_message("2|eve", "2", "hi")
        assert bus.inbound_size == 0

        await channel._handle_message("1|ann", "1", "hi", display_name="Ann")
        msg = await bus.consume_inbound()
        assert msg.channel == "test"
        assert msg.display_name == "Ann"


def test_user_key_ignores_username():
    msg = InboundMessage(channel="telegram", sender_id="42|alice", chat_id="42", content="x")
    assert msg.user_key == "telegram_42"


@pytest.mark.asyncio
async def test_manager_dispatches_to_owning_channel():
    bus = MessageBus()
    manager = ChannelManager(Config(), bus)
    assert manager.enabled_channels == []

    channel = RecordingChannel(TelegramConfig(), bus)
    manager.add_channel(channel)

    task = asyncio.create_task(manager.start_all())
    await bus.publish_outbound(OutboundMessage(channel="test", chat_id="1", content="hello"))
    await bus.publish_outbound(OutboundMessage(channel="ghost", chat_id="1", content="lost"))
    for _ in range(20):
        if channel.sent:
            break
        await asyncio.sleep(0.01)

    assert [m.content for m in channel.sent] == ["hello"]
    assert manager.get_status() == {"test": {"enabled": True, "running": True}}

    await manager.stop_all()
    await task
    assert not channel.is_running


class TestSplitContent:
    def test_short_content_is_unchanged(self):
        assert split_content("hello", 2000) == ["hello"]

    def test_prefers_paragraph_breaks(self):
        text = "a" * 60 + "\n\n" + "b" * 60
        assert split_content(text, 100) == ["a" * 60, "b" * 60]

    def test_hard_split_without_boundaries(self):
        chunks = split_content("x" * 250, 100)
        assert [len(c) for c in chunks] == [100, 100, 50]


class TestTelegramFormatting:
    def test_bold_and_links(self):
        html = _markdown_to_telegram_html("**Saved** [note](https://x.test)")
        assert html == '<b>Saved</b> <a href="https://x.test">note</a>'

    def test_escapes_html(self):
        assert _markdown_to_telegram_html("a < b & c") == "a &lt; b &amp; c"

    def test_code_is_not_formatted(self):
        html = _markdown_to_telegram_html("`**raw**`")
        assert html == "<code>**raw**</code>"

    def test_bullets(self):
        assert _markdown_to_telegram_html("- one\n- two") == "• one\n• two"

    def test_empty(self):
        assert _markdown_to_telegram_html("") == ""


class TestDiscordReplyReference:
    def test_reference_points_at_source_message(self):
        reference = DiscordChannel._reference(555, "123")
        assert reference.message_id == 123
        assert reference.channel_id == 555
        assert reference.fail_if_not_exists is False

    @pytest.mark.parametrize("reply_to", [None, "", "abc"])
    def test_no_reference_without_numeric_id(self, reply_to):
        assert DiscordChannel._reference(555, reply_to) is None
