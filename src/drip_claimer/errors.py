#!/usr/bin/env python3
"""Error types for the drip claimer.

Configuration problems are reported as plain ``ValueError`` from the config
dataclasses. Everything raised at runtime derives from ``ClaimerError`` so the
watcher can log a failed attempt and keep polling.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import EndpointFailure


class ErrorKind(Enum):
    """Category of a failed issuance API call."""
    TRANSPORT = "transport"
    UNAUTHORIZED = "unauthorized"
    PAYMENT_REQUIRED = "payment_required"
    CLIENT_ERROR = "client_error"
    SERVER_ERROR = "server_error"

    @classmethod
    def from_status(cls, status_code: int | None) -> "ErrorKind":
        """Map an HTTP status code to its error category."""
        match status_code:
            case None:
                return cls.TRANSPORT
            case 401:
                return cls.UNAUTHORIZED
            case 402:
                return cls.PAYMENT_REQUIRED
            case code if code >= 500:
                return cls.SERVER_ERROR
            case _:
                return cls.CLIENT_ERROR


class ClaimerError(Exception):
    """Base class for runtime failures of a claim attempt."""


class NoReachableEndpointError(ClaimerError):
    """Raised when no RPC candidate answered a chain id query."""

    def __init__(self, failures: "list[EndpointFailure]", message: str | None = None) -> None:
        self.failures = list(failures)
        if message is None:
            tried = "; ".join(f"{f.url} ({f.reason})" for f in self.failures)
            message = f"Unable to reach any RPC endpoints. Tried: {tried}"
        super().__init__(message)


class CaptchaError(ClaimerError):
    """Raised when the captcha service rejects or never completes a job."""


class ApiError(ClaimerError):
    """A failed call to the issuance API.

    Attributes:
        status_code: HTTP status, or None for transport failures
        body: Decoded JSON body, raw text, or None
        kind: Category derived from the status code
    """

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.kind = ErrorKind.from_status(status_code)


class CredentialExpiredError(ApiError):
    """HTTP 401 from an authenticated call; the cached bearer is no longer valid."""

    def __init__(self, message: str = "Credential expired", body: Any = None) -> None:
        super().__init__(message, status_code=401, body=body)


class AuthenticationError(ClaimerError):
    """The challenge or verify step returned an unusable payload."""


class ApprovalError(ClaimerError):
    """The allowance approval transaction failed or was reverted."""


class RequirementNotObtainedError(ClaimerError):
    """The no-payment probe did not come back with HTTP 402."""

    def __init__(self, message: str, status_code: int | None = None, body: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
