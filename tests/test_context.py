"""Tests for system prompt rendering."""

from datetime import datetime

from notebot.agent.context import ContextBuilder
from notebot.agent.tools import CompleteTool, ReplyUserTool, SaveNoteTool


async def _send(text: str) -> None:
    return None


def test_prompt_lists_tools_with_examples(note_store):
    builder = ContextBuilder(name="Copilot")
    tools = [SaveNoteTool(note_store, "u1"), ReplyUserTool(_send), CompleteTool()]

    prompt = builder.build_system_prompt(tools, "Ann", now=datetime(2024, 5, 1, 9, 30))

    assert prompt.startswith("You are Copilot")
    assert "helps Ann" in prompt
    assert "2024-05-01 09:30 (Wednesday)" in prompt
    assert "- saveNote:" in prompt
    assert "Required Parameters: title, content, tags" in prompt
    assert '  <invoke name="replyUser">' in prompt
    assert '    <parameter name="message">value</parameter>' in prompt
    assert "Required Parameters: none" in prompt


def test_blank_display_name_falls_back():
    prompt = ContextBuilder().build_system_prompt([], "")
    assert "helps the user" in prompt
    assert "Autonomous Copilot" in prompt


def test_custom_template_dir(tmp_path):
    (tmp_path / "short.md").write_text("{{ name }} for {{ display_name }}: {{ tools | length }}")
    builder = ContextBuilder(name="Bot", template_dir=tmp_path, template_name="short.md")
    assert builder.build_system_prompt([CompleteTool()], "Bo") == "Bot for Bo: 1"
