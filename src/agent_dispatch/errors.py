"""Exception taxonomy for capability registration and execution."""

from __future__ import annotations


class DispatchError(Exception):
    """Base class for all dispatch-core errors."""


class DuplicateCapabilityError(DispatchError, ValueError):
    """Raised when a capability name is registered twice."""


class NotFoundError(DispatchError, KeyError):
    """Raised when looking up a capability that was never registered."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message.
        return str(self.args[0]) if self.args else ""


class CapabilityError(DispatchError):
    """Base class for failures signalled by capability handlers."""


class RetryableError(CapabilityError):
    """Transient handler failure; the executor backs off and tries again."""


class FatalError(CapabilityError):
    """Non-retryable handler failure, e.g. a malformed request."""


_RETRYABLE_STATUS_CODES = frozenset({408, 409, 429})


def classify_provider_error(exc: BaseException) -> CapabilityError:
    """Map a chat-model client exception onto the retry taxonomy.

    Connection problems, timeouts, rate limits and 5xx responses are transient.
    Any other HTTP error (bad request, auth, not found) will fail the same way
    on every attempt and is reported as fatal.
    """

    if isinstance(exc, CapabilityError):
        return exc
    if isinstance(exc, (TimeoutError, ConnectionError)):
        return RetryableError(str(exc) or exc.__class__.__name__)

    status_code = getattr(exc, "status_code", None)
    if status_code is None:
        response = getattr(exc, "response", None)
        status_code = getattr(response, "status_code", None)

    name = exc.__class__.__name__
    message = f"{name}: {exc}"
    if isinstance(status_code, int):
        if status_code in _RETRYABLE_STATUS_CODES or status_code >= 500:
            return RetryableError(message)
        return FatalError(message)
    if "Timeout" in name or "Connection" in name:
        return RetryableError(message)
    return FatalError(message)
