"""
Retry wrapper for calls to the generative service.

Quota and transient server failures are retried with exponential backoff;
anything else aborts on the first attempt. Whatever the outcome, callers see
a single consolidated LLMError.
"""

import logging
import time
from enum import Enum
from typing import Callable, TypeVar

from openai import APIConnectionError, APITimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_QUOTA_MARKERS = ("429", "quota")
_SERVER_MARKERS = ("500", "503", "overloaded", "unavailable")


class ErrorKind(str, Enum):
    """Failure classes of a service call."""

    QUOTA = "quota_exceeded"
    TRANSIENT = "transient_server"
    FATAL = "fatal"


class LLMError(Exception):
    """Raised when a call to the generative service fails."""

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        retryable: bool = False,
        kind: ErrorKind = ErrorKind.FATAL,
    ):
        self.cause = cause
        self.retryable = retryable
        self.kind = kind
        super().__init__(message)

    @property
    def quota_exceeded(self) -> bool:
        """Whether the failure was a usage limit."""
        return self.kind == ErrorKind.QUOTA


def _status_of(error: BaseException) -> int | None:
    for attr in ("status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _message_of(error: BaseException) -> str:
    return str(getattr(error, "message", None) or error) or error.__class__.__name__


def classify_error(error: BaseException) -> ErrorKind:
    """
    Classify a failed call.

    Args:
        error: The exception raised by the call.

    Returns:
        QUOTA for HTTP 429 or quota messages, TRANSIENT for HTTP >= 500,
        connection problems or overload messages, FATAL otherwise.
    """
    status = _status_of(error)
    message = _message_of(error).lower()

    if status == 429 or any(marker in message for marker in _QUOTA_MARKERS):
        return ErrorKind.QUOTA

    if isinstance(error, (APIConnectionError, APITimeoutError)):
        return ErrorKind.TRANSIENT

    if (status is not None and status >= 500) or any(
        marker in message for marker in _SERVER_MARKERS
    ):
        return ErrorKind.TRANSIENT

    return ErrorKind.FATAL


def with_retry(
    operation: Callable[[], T],
    description: str,
    *,
    max_retries: int = 3,
    initial_delay: float = 2.0,
    backoff_factor: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run an operation, retrying quota and transient server failures.

    Args:
        operation: Zero-argument callable performing the service call.
        description: What the call does, used in log lines and error messages
            (e.g. "grade submission").
        max_retries: Retries after the first attempt.
        initial_delay: Seconds to wait before the first retry.
        backoff_factor: Multiplier applied to the delay after every retry.
        sleep: Sleep function, replaceable in tests.

    Returns:
        The operation's result.

    Raises:
        LLMError: On a fatal failure or once retries are exhausted.
    """
    delay = initial_delay
    last_error: Exception | None = None
    kind = ErrorKind.FATAL

    for attempt in range(max_retries + 1):
        try:
            return operation()
        except Exception as e:
            last_error = e
            kind = classify_error(e)

            if kind == ErrorKind.FATAL or attempt >= max_retries:
                break

            logger.warning(
                "Service error (attempt %d/%d) for %s: %s. Retrying in %.1fs...",
                attempt + 1,
                max_retries + 1,
                description,
                _message_of(e),
                delay,
            )
            sleep(delay)
            delay *= backoff_factor

    if last_error is None:
        raise LLMError(f"Failed to {description}: no attempt was made")

    if kind == ErrorKind.QUOTA:
        raise LLMError(
            f"Usage limit exceeded for {description}. "
            "Please wait a moment before trying again.",
            cause=last_error,
            retryable=True,
            kind=kind,
        ) from last_error

    logger.error("Final error in %s: %s", description, _message_of(last_error))
    raise LLMError(
        f"Failed to {description}: {_message_of(last_error)}",
        cause=last_error,
        retryable=kind == ErrorKind.TRANSIENT,
        kind=kind,
    ) from last_error
