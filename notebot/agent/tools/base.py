"""Base class for agent tools."""

import json
from abc import ABC, abstractmethod
from typing import Any


class _TaskComplete:
    """Sentinel returned by a tool to end the current request."""

    _instance: "_TaskComplete | None" = None

    def __new__(cls) -> "_TaskComplete":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "TASK_COMPLETE"


TASK_COMPLETE = _TaskComplete()


def _coerce_array(value: Any) -> list[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    text = str(value).strip()
    if text.startswith("["):
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError:
            decoded = None
        if isinstance(decoded, list):
            return [str(v).strip() for v in decoded if str(v).strip()]
        text = text.strip("[]")
    return [part.strip() for part in text.split(",") if part.strip()]


class Tool(ABC):
    """
    Abstract base class for agent tools.

    Tools are capabilities the model invokes by emitting an ``<invoke>``
    block naming the tool, with one ``<parameter>`` element per argument.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Tool name used in function calls."""

    @property
    @abstractmethod
    def description(self) -> str:
        """Description of what the tool does."""

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """JSON Schema for tool parameters."""

    @abstractmethod
    async def execute(self, **kwargs: Any) -> Any:
        """
        Execute the tool with given parameters.

        Returns:
            A JSON-serializable result fed back to the model, or
            ``TASK_COMPLETE`` to end the request.
        """

    @property
    def required(self) -> list[str]:
        return list(self.parameters.get("required", []))

    def validate_params(self, params: dict[str, Any]) -> list[str]:
        """Return a list of problems with ``params``; empty when valid."""
        errors = []
        for key in self.required:
            value = params.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                errors.append(f"missing required parameter '{key}'")
        return errors

    def cast_params(self, params: dict[str, Any]) -> dict[str, Any]:
        """Coerce string values to the types declared in the schema.

        Only arrays need this: the wire format carries text, so a list arrives
        as a comma-separated or JSON array string. Unknown keys pass through.
        """
        properties = self.parameters.get("properties", {})
        cast: dict[str, Any] = {}
        for key, value in params.items():
            if properties.get(key, {}).get("type") == "array":
                cast[key] = _coerce_array(value)
            elif isinstance(value, list) and properties.get(key, {}).get("type") == "string":
                # Repeated parameter for a scalar: keep the last one
                cast[key] = value[-1]
            else:
                cast[key] = value
        return cast

    def example(self) -> str:
        """Render an example ``<invoke>`` block listing the required parameters."""
        lines = [f'<invoke name="{self.name}">']
        for param in self.required:
            lines.append(f'  <parameter name="{param}">value</parameter>')
        lines.append("</invoke>")
        return "\n".join(lines)
