"""Error codes and structured errors for health analysis.

Complexity and graph failures surface through the ConstellationHealthError
hierarchy instead. These codes tag failures handled inside a run.

Error Code Convention:
    CH2xx - Churn (git history) errors
    CH4xx - Batch processing errors
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCode(Enum):
    """Structured error codes for observability and debugging."""

    # Churn errors (CH2xx)
    CH200 = "CH200"  # Git not found
    CH201 = "CH201"  # Not a git repository
    CH202 = "CH202"  # Git subprocess timeout
    CH203 = "CH203"  # Git command failed or output unparseable
    CH204 = "CH204"  # Git subprocess could not be started

    # Batch errors (CH4xx)
    CH400 = "CH400"  # Resource exhaustion (memory, threads, descriptors)
    CH401 = "CH401"  # Batch worker failure


@dataclass
class HealthError(Exception):
    """Base exception with structured context for logging.

    Attributes:
        message: Human-readable error description
        code: Structured error code for categorization
        context: Additional context (file path, batch index, etc.)
        recoverable: Whether the run can carry on after this error
        recovery_hint: Suggested fix for the user
    """

    message: str
    code: ErrorCode
    context: dict[str, Any] = field(default_factory=dict)
    recoverable: bool = True
    recovery_hint: str | None = None

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.message}"

    def __post_init__(self) -> None:
        super().__init__(str(self))

    def to_json(self) -> dict[str, Any]:
        """Structured logging format."""
        return {
            "error_code": self.code.value,
            "message": self.message,
            "context": self.context,
            "recoverable": self.recoverable,
            "recovery_hint": self.recovery_hint,
        }


class ChurnError(HealthError):
    """Errors while reading version-control history (CH2xx)."""

    pass


class BatchError(HealthError):
    """Errors raised while processing one batch of files (CH4xx)."""

    pass
