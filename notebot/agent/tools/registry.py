"""Tool registry and dispatch."""

import time
from typing import TYPE_CHECKING, Any

from loguru import logger

from notebot.agent.errors import ErrorCategory, ErrorLogger
from notebot.agent.tools.base import Tool
from notebot.errors import ToolExecutionError

if TYPE_CHECKING:
    from notebot.agent.parser import ToolCall


class ToolRegistry:
    """Registry of the tools available to one request, with dispatch."""

    def __init__(self, error_logger: ErrorLogger | None = None):
        self._tools: dict[str, Tool] = {}
        self._error_logger = error_logger

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        return name in self._tools

    @property
    def tools(self) -> list[Tool]:
        return list(self._tools.values())

    @property
    def tool_names(self) -> list[str]:
        return list(self._tools.keys())

    def _report(self, category: ErrorCategory, message: str, tool_name: str, user_id: str | None) -> None:
        if self._error_logger:
            self._error_logger.log(
                category,
                message,
                tool_name=tool_name,
                user_id=user_id,
                severity="warning",
                recovered=True,
            )
        else:
            logger.warning(f"[{category.value}] {message}")

    async def dispatch(self, call: "ToolCall", user_id: str | None = None) -> Any:
        """
        Execute one parsed tool call.

        Returns:
            The tool's result, ``TASK_COMPLETE``, or None when the call was
            skipped (unknown tool or missing required parameters).

        Raises:
            ToolExecutionError: if the tool itself raised.
        """
        tool = self._tools.get(call.tool_name)
        if tool is None:
            self._report(
                ErrorCategory.UNKNOWN_TOOL,
                f"Model requested unknown tool '{call.tool_name}'",
                call.tool_name,
                user_id,
            )
            return None

        errors = tool.validate_params(call.params)
        if errors:
            self._report(
                ErrorCategory.TOOL_VALIDATION,
                f"Skipping {call.tool_name}: {'; '.join(errors)}",
                call.tool_name,
                user_id,
            )
            return None

        params = tool.cast_params(call.params)
        start = time.perf_counter()
        try:
            result = await tool.execute(**params)
        except Exception as e:
            raise ToolExecutionError(call.tool_name, e) from e

        duration_ms = (time.perf_counter() - start) * 1000
        logger.debug(f"{call.tool_name} executed in {duration_ms:.0f}ms")
        return result

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
