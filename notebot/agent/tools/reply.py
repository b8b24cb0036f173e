"""Tool for replying to the user."""

from collections.abc import Awaitable, Callable
from typing import Any

from notebot.agent.tools.base import Tool


class ReplyUserTool(Tool):
    """Sends a message back to the user through the channel they wrote from."""

    def __init__(self, send: Callable[[str], Awaitable[None]]):
        self._send = send

    @property
    def name(self) -> str:
        return "replyUser"

    @property
    def description(self) -> str:
        return (
            "Reply to the user with a clear, well-structured message in the same "
            "language they used. Use bullet points for lists, backticks for code or "
            "commands, and keep the response concise."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Message text (Markdown)"},
            },
            "required": ["message"],
        }

    async def execute(self, **kwargs: Any) -> str:
        # Models often emit escaped newlines inside parameter text
        message = str(kwargs["message"]).replace("\\n", "\n")
        await self._send(message)
        return message
