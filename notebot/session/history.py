"""Per-user conversation history."""

from typing import Any

from loguru import logger

Message = dict[str, Any]

DEFAULT_MAX_HISTORY = 20


class ConversationHistoryManager:
    """
    Keeps a bounded list of chat messages per user.

    Index 0 holds the system prompt once ``ensure_system_prompt`` has run;
    it is rewritten for every request and never evicted. When a push would
    take the history past ``max_history`` the oldest other message is dropped.
    """

    def __init__(self, max_history: int = DEFAULT_MAX_HISTORY):
        if max_history < 2:
            raise ValueError(f"max_history must be >= 2, got {max_history}")
        self.max_history = max_history
        self._histories: dict[str, list[Message]] = {}

    def get(self, user_id: str) -> list[Message]:
        """Return the live history list for ``user_id`` (created on first use)."""
        return self._histories.setdefault(user_id, [])

    @staticmethod
    def _has_prompt(history: list[Message]) -> bool:
        return bool(history) and history[0].get("role") == "system"

    def push(self, user_id: str, message: Message) -> None:
        history = self.get(user_id)
        self.trim(history)
        history.append(message)

    def trim(self, history: list[Message]) -> None:
        """Make room for one more message in ``history``."""
        first = 1 if self._has_prompt(history) else 0
        while len(history) >= self.max_history and len(history) > first:
            dropped = history.pop(first)
            logger.debug(f"History full, dropped oldest {dropped.get('role')} message")

    def append(self, history: list[Message], message: Message) -> None:
        """Append to an already fetched history, honoring the size bound."""
        self.trim(history)
        history.append(message)

    def ensure_system_prompt(self, user_id: str, prompt: str) -> None:
        self.apply_system_prompt(self.get(user_id), prompt)

    def apply_system_prompt(self, history: list[Message], prompt: str) -> None:
        """Write ``prompt`` at index 0 of ``history``, inserting it if missing."""
        if self._has_prompt(history):
            history[0]["content"] = prompt
        else:
            if len(history) >= self.max_history:
                history.pop(0)
            history.insert(0, {"role": "system", "content": prompt})

    def clear(self, user_id: str) -> None:
        self._histories.pop(user_id, None)

    @property
    def users(self) -> list[str]:
        return list(self._histories)
