"""Shared error types for notebot.

Infrastructure failures stay explicit exceptions; they are only turned into
user-facing text at the edge (the agent loop), never inside the store.
"""


class NotebotError(Exception):
    """Base error for notebot."""

    # Agent turn during which the error surfaced, when raised inside the loop
    turn: int | None = None


class ParseError(NotebotError):
    """Tool-call markup in a model response could not be parsed."""


class UnknownToolError(NotebotError):
    """Tool name requested by the model isn't registered."""


class ToolValidationError(NotebotError):
    """Tool arguments failed schema validation."""


class ToolExecutionError(NotebotError):
    """A registered tool raised while executing."""

    def __init__(self, tool_name: str, cause: BaseException):
        super().__init__(f"Tool '{tool_name}' failed: {cause}")
        self.tool_name = tool_name
        self.cause = cause


class ProviderError(NotebotError):
    """Chat-completion or embedding call failed (network/auth/quota/etc.)."""


class ProviderTimeoutError(ProviderError):
    """Provider call did not finish within its timeout."""


class StorageError(NotebotError):
    """Content store or vector index call failed."""


class StorageTimeoutError(StorageError):
    """Storage call did not finish within its timeout."""


class TurnLimitExceeded(NotebotError):
    """The agent made too many completions without finishing the request."""

    def __init__(self, max_turns: int):
        super().__init__(f"Agent did not complete within {max_turns} turns")
        self.max_turns = max_turns
