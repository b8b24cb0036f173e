"""System prompt rendering for the agent."""

from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from notebot.agent.tools.base import Tool


class ContextBuilder:
    """Renders the system prompt listing the tools available for a request."""

    def __init__(
        self,
        name: str = "Autonomous Copilot",
        template_dir: str | Path | None = None,
        template_name: str = "system_prompt.md",
    ):
        if template_dir is None:
            template_dir = Path(__file__).parent / "templates"
        self.name = name
        self._template_name = template_name
        self._env = Environment(
            loader=FileSystemLoader(str(template_dir)),
            trim_blocks=True,
            lstrip_blocks=True,
            keep_trailing_newline=False,
        )

    def build_system_prompt(
        self,
        tools: list[Tool],
        display_name: str = "the user",
        now: datetime | None = None,
    ) -> str:
        """Render the prompt for ``display_name`` with call examples for ``tools``."""
        template = self._env.get_template(self._template_name)
        return template.render(
            name=self.name,
            display_name=display_name or "the user",
            now=(now or datetime.now()).strftime("%Y-%m-%d %H:%M (%A)"),
            tools=tools,
        )
