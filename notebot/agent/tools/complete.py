"""Tool that ends the current request."""

from typing import Any

from notebot.agent.tools.base import TASK_COMPLETE, Tool


class CompleteTool(Tool):
    @property
    def name(self) -> str:
        return "complete"

    @property
    def description(self) -> str:
        return (
            "Call this tool when you have completed the user's request and no "
            "further actions are needed"
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, **kwargs: Any) -> Any:
        return TASK_COMPLETE
