"""Exception types and error classification for engine synchronization."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel


class PlanBridgeError(Exception):
    """Base class for all planbridge errors."""


class EngineError(PlanBridgeError):
    """Base class for failures talking to the external scheduling engine."""

    def __init__(self, message: str, *, command: str | None = None) -> None:
        super().__init__(message)
        self.command = command


class EngineTransportError(EngineError):
    """The engine could not be reached or answered with a transport-level failure."""

    def __init__(self, message: str, *, command: str | None = None, status_code: int | None = None) -> None:
        super().__init__(message, command=command)
        self.status_code = status_code


class EngineCommandError(EngineError):
    """The engine was reached but reported the command as failed."""


class InvalidEngineResponseError(EngineError):
    """The engine reported success but the payload is missing or malformed."""


class ErrorCategory(Enum):
    """Categories of errors that can occur while synchronizing with the engine."""

    TRANSPORT_FAILURE = "transport_failure"
    COMMAND_REJECTED = "command_rejected"
    INVALID_RESPONSE = "invalid_response"
    TIMEOUT = "timeout"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ErrorReport(BaseModel):
    """Structured description of a background failure, suitable for logging."""

    category: ErrorCategory
    severity: ErrorSeverity
    message: str
    command: str | None = None


_ERROR_PATTERNS: dict[Literal["timeout", "network"], dict[str, list[str] | set[str]]] = {
    "timeout": {
        "phrases": ["timed out", "timeout"],
        "exception_types": {"TimeoutError", "TimeoutException", "ReadTimeout", "ConnectTimeout"},
    },
    "network": {
        "phrases": [
            "connection refused",
            "connection reset",
            "unreachable",
            "502",
            "503",
            "504",
        ],
        "exception_types": {"ConnectionError", "ConnectError", "OSError"},
    },
}


def _match_error_pattern(*, error_str: str, exception_type: str, pattern_type: Literal["timeout", "network"]) -> bool:
    """Return True if the error matches the configured pattern type."""
    patterns = _ERROR_PATTERNS[pattern_type]
    return any(phrase in error_str for phrase in patterns["phrases"]) or exception_type in patterns["exception_types"]


def classify_sync_error(exception: BaseException) -> ErrorCategory:
    """Classify a synchronization or recalculation failure.

    Typed engine errors are classified by type first; anything else falls back
    to inspecting the exception name and message.

    Args:
        exception: The exception raised while talking to the engine

    Returns:
        The matching ErrorCategory
    """
    if isinstance(exception, InvalidEngineResponseError):
        return ErrorCategory.INVALID_RESPONSE
    if isinstance(exception, EngineCommandError):
        return ErrorCategory.COMMAND_REJECTED

    error_str = str(exception).lower()
    exception_type = type(exception).__name__
    cause = exception.__cause__
    cause_type = type(cause).__name__ if cause is not None else ""

    for candidate in (exception_type, cause_type):
        if _match_error_pattern(error_str=error_str, exception_type=candidate, pattern_type="timeout"):
            return ErrorCategory.TIMEOUT

    if isinstance(exception, EngineTransportError):
        return ErrorCategory.TRANSPORT_FAILURE

    for candidate in (exception_type, cause_type):
        if _match_error_pattern(error_str=error_str, exception_type=candidate, pattern_type="network"):
            return ErrorCategory.TRANSPORT_FAILURE

    return ErrorCategory.UNKNOWN


def build_error_report(exception: BaseException) -> ErrorReport:
    """Classify an error and attach a severity for structured logging."""
    category = classify_sync_error(exception)
    severity = {
        ErrorCategory.TRANSPORT_FAILURE: ErrorSeverity.MEDIUM,
        ErrorCategory.TIMEOUT: ErrorSeverity.MEDIUM,
        ErrorCategory.COMMAND_REJECTED: ErrorSeverity.HIGH,
        ErrorCategory.INVALID_RESPONSE: ErrorSeverity.HIGH,
    }.get(category, ErrorSeverity.LOW)
    return ErrorReport(
        category=category,
        severity=severity,
        message=str(exception) or type(exception).__name__,
        command=getattr(exception, "command", None),
    )
