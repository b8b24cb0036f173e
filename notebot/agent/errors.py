"""Structured error logging and categorization for the agent and note store."""

import json
import time
from dataclasses import asdict, dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from notebot.errors import (
    ParseError,
    ProviderError,
    ProviderTimeoutError,
    StorageError,
    StorageTimeoutError,
    ToolExecutionError,
    ToolValidationError,
    TurnLimitExceeded,
    UnknownToolError,
)


class ErrorCategory(str, Enum):
    """Categories of errors for tracking and analysis."""

    # Model output / dispatch
    PARSE = "parse"
    UNKNOWN_TOOL = "unknown_tool"
    TOOL_VALIDATION = "tool_validation"
    TOOL_EXECUTION = "tool_execution"

    # External services
    PROVIDER = "provider"
    PROVIDER_TIMEOUT = "provider_timeout"
    STORAGE = "storage"
    STORAGE_TIMEOUT = "storage_timeout"
    INDEXING = "indexing"

    # Loop control
    TURN_LIMIT = "turn_limit"

    UNKNOWN = "unknown"


# Most specific first; timeouts subclass their parent errors.
_CATEGORY_BY_TYPE: list[tuple[type[Exception], ErrorCategory]] = [
    (ParseError, ErrorCategory.PARSE),
    (UnknownToolError, ErrorCategory.UNKNOWN_TOOL),
    (ToolValidationError, ErrorCategory.TOOL_VALIDATION),
    (ToolExecutionError, ErrorCategory.TOOL_EXECUTION),
    (ProviderTimeoutError, ErrorCategory.PROVIDER_TIMEOUT),
    (ProviderError, ErrorCategory.PROVIDER),
    (StorageTimeoutError, ErrorCategory.STORAGE_TIMEOUT),
    (StorageError, ErrorCategory.STORAGE),
    (TurnLimitExceeded, ErrorCategory.TURN_LIMIT),
]


def categorize(exception: BaseException) -> ErrorCategory:
    """Map an exception to its error category."""
    if isinstance(exception, ToolExecutionError) and exception.cause is not None:
        # Report what the tool actually hit, e.g. a storage timeout
        inner = categorize(exception.cause)
        if inner is not ErrorCategory.UNKNOWN:
            return inner
    for exc_type, category in _CATEGORY_BY_TYPE:
        if isinstance(exception, exc_type):
            return category
    return ErrorCategory.UNKNOWN


@dataclass
class ErrorRecord:
    """Structured error record for analysis."""

    timestamp: float
    category: ErrorCategory
    tool_name: str | None
    user_id: str | None
    error_message: str
    error_type: str  # Exception class name
    context: dict[str, Any] | None
    severity: str  # "critical", "error", "warning", "info"
    recovered: bool  # Did the system carry on without surfacing the error?


class ErrorLogger:
    """
    Error logging with categorization and metrics.

    Logs to:
    - Loguru logger (traditional logging)
    - JSON error log (for analysis)
    - In-memory metrics (for health checks)
    """

    def __init__(self, data_dir: Path):
        self._error_log_path = Path(data_dir) / "errors.jsonl"
        self._error_log_path.parent.mkdir(parents=True, exist_ok=True)

        self._error_counts: dict[ErrorCategory, int] = {}
        self._error_rate_window: list[float] = []  # Errors in last hour
        self._recovery_counts: dict[ErrorCategory, int] = {}

    @property
    def path(self) -> Path:
        return self._error_log_path

    def log(
        self,
        category: ErrorCategory,
        error_message: str,
        error_type: str = "Error",
        tool_name: str | None = None,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
        severity: str = "error",
        recovered: bool = False,
    ) -> None:
        """
        Log an error with full context.

        Args:
            category: The error category for grouping
            error_message: Human-readable error message
            error_type: Exception class name
            tool_name: Name of tool if tool-related
            user_id: User whose request triggered the error
            context: Additional context (turn, arguments, etc.)
            severity: "critical", "error", "warning", "info"
            recovered: Did the system recover automatically?
        """
        prefix = f"[{category.value}]" + (f" user={user_id}" if user_id else "")
        if severity == "critical":
            logger.critical(f"{prefix} {error_message}")
        elif severity == "error":
            logger.error(f"{prefix} {error_message}")
        elif severity == "warning":
            logger.warning(f"{prefix} {error_message}")
        else:
            logger.info(f"{prefix} {error_message}")

        record = ErrorRecord(
            timestamp=time.time(),
            category=category,
            tool_name=tool_name,
            user_id=user_id,
            error_message=error_message,
            error_type=error_type,
            context=context,
            severity=severity,
            recovered=recovered,
        )
        self._write_record(record)
        self._update_metrics(category, recovered)

    def log_exception(
        self,
        exception: BaseException,
        category: ErrorCategory | None = None,
        tool_name: str | None = None,
        user_id: str | None = None,
        context: dict[str, Any] | None = None,
        severity: str = "error",
        recovered: bool = False,
    ) -> None:
        """Log an exception, deriving the category from its type when not given."""
        if tool_name is None and isinstance(exception, ToolExecutionError):
            tool_name = exception.tool_name
        self.log(
            category=category or categorize(exception),
            error_message=str(exception),
            error_type=type(exception).__name__,
            tool_name=tool_name,
            user_id=user_id,
            context=context,
            severity=severity,
            recovered=recovered,
        )

    def _write_record(self, record: ErrorRecord) -> None:
        """Write error record to JSONL log."""
        try:
            with open(self._error_log_path, "a", encoding="utf-8") as f:
                f.write(json.dumps(asdict(record), default=str) + "\n")
        except OSError as e:
            logger.error(f"Failed to write error record: {e}")

    def _update_metrics(self, category: ErrorCategory, recovered: bool) -> None:
        self._error_counts[category] = self._error_counts.get(category, 0) + 1

        now = time.time()
        self._error_rate_window = [t for t in self._error_rate_window if now - t < 3600]
        self._error_rate_window.append(now)

        if recovered:
            self._recovery_counts[category] = self._recovery_counts.get(category, 0) + 1

    def get_metrics(self) -> dict[str, Any]:
        """
        Get current error metrics.

        Returns:
            Dictionary with error statistics.
        """
        recovery_rates = {
            category.value: self._recovery_counts.get(category, 0) / count
            for category, count in self._error_counts.items()
            if count > 0
        }
        return {
            "total_errors": sum(self._error_counts.values()),
            "errors_by_category": {k.value: v for k, v in self._error_counts.items()},
            "errors_last_hour": len(self._error_rate_window),
            "recovery_rates": recovery_rates,
        }

    def get_recent_errors(self, minutes: int = 30) -> list[dict[str, Any]]:
        """Read errors from the JSONL log newer than ``minutes`` ago, newest first."""
        if not self._error_log_path.exists():
            return []

        cutoff = time.time() - (minutes * 60)
        records = []
        try:
            with open(self._error_log_path, "r", encoding="utf-8") as f:
                for line in f:
                    try:
                        record = json.loads(line.strip())
                    except json.JSONDecodeError:
                        continue
                    if record.get("timestamp", 0) >= cutoff:
                        records.append(record)
        except OSError as e:
            logger.warning(f"Failed to read error log: {e}")

        records.sort(key=lambda x: x.get("timestamp", 0), reverse=True)
        return records

    def reset_metrics(self) -> None:
        """Reset in-memory metrics (useful for testing)."""
        self._error_counts.clear()
        self._error_rate_window.clear()
        self._recovery_counts.clear()
