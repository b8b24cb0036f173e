"""Agent tools."""

from notebot.agent.tools.base import TASK_COMPLETE, Tool
from notebot.agent.tools.complete import CompleteTool
from notebot.agent.tools.notes import ListNotesTool, SaveNoteTool, SearchNotesTool, ViewNoteTool
from notebot.agent.tools.registry import ToolRegistry
from notebot.agent.tools.reply import ReplyUserTool

__all__ = [
    "TASK_COMPLETE",
    "CompleteTool",
    "ListNotesTool",
    "ReplyUserTool",
    "SaveNoteTool",
    "SearchNotesTool",
    "Tool",
    "ToolRegistry",
    "ViewNoteTool",
]
