"""Error taxonomy for platform API calls.

Server error bodies are decoded exactly once, here, into an ``ErrorKind``.
Callers branch on the kind and never inspect message text themselves.
"""

from enum import StrEnum
from typing import Any

import httpx


class ErrorKind(StrEnum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    BUSINESS_RULE = "business_rule"
    DUPLICATE_SUBSCRIPTION = "duplicate_subscription"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    KYC_REQUIRED = "kyc_required"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    UNEXPECTED = "unexpected"


GENERIC_FAILURE_MESSAGE = "Request failed, please try again"

# Servers that predate structured error codes only send text. These phrases
# are the complete legacy vocabulary for the duplicate-subscription case.
LEGACY_DUPLICATE_PHRASES: tuple[str, ...] = (
    "already subscribed",
    "already have an active subscription",
    "already subscribed to this project",
)


class ApiError(Exception):
    """A request the platform refused or that could not be completed."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        kind: ErrorKind = ErrorKind.UNEXPECTED,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.kind = kind
        self.payload = payload

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, status={self.status_code}, message={self.message!r})"


class AuthenticationExpiredError(ApiError):
    def __init__(self, message: str = "Session expired, please log in again") -> None:
        super().__init__(message, status_code=401, kind=ErrorKind.AUTHENTICATION)


class NetworkError(ApiError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None, kind=ErrorKind.NETWORK)


def kind_from_code(code: str | None) -> ErrorKind | None:
    if not code:
        return None
    try:
        return ErrorKind(code.lower())
    except ValueError:
        return None


def kind_from_message(message: str) -> ErrorKind | None:
    lowered = message.lower()
    if any(phrase in lowered for phrase in LEGACY_DUPLICATE_PHRASES):
        return ErrorKind.DUPLICATE_SUBSCRIPTION
    return None


def kind_from_status(status_code: int) -> ErrorKind:
    if status_code == 401:
        return ErrorKind.AUTHENTICATION
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code == 422:
        return ErrorKind.VALIDATION
    if status_code < 500:
        return ErrorKind.BUSINESS_RULE
    return ErrorKind.UNEXPECTED


def _extract_message(payload: Any) -> str | None:
    if isinstance(payload, str):
        return payload.strip() or None
    if isinstance(payload, dict):
        for key in ("message", "detail", "error"):
            value = payload.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict):
                nested = _extract_message(value)
                if nested:
                    return nested
    return None


def decode_error(response: httpx.Response) -> ApiError:
    """Build an ``ApiError`` from a non-2xx response."""
    try:
        payload: Any = response.json()
    except ValueError:
        payload = response.text
    return error_from_payload(payload, response.status_code)


def error_from_payload(payload: Any, status_code: int) -> ApiError:
    """Classify an error body.

    Precedence for the kind: an explicit ``code`` in the body, then the
    legacy message vocabulary, then the HTTP status.
    """
    code = None
    if isinstance(payload, dict):
        code = payload.get("code")
        if code is None and isinstance(payload.get("detail"), dict):
            code = payload["detail"].get("code")

    message = _extract_message(payload) or GENERIC_FAILURE_MESSAGE
    kind = (
        kind_from_code(code)
        or kind_from_message(message)
        or kind_from_status(status_code)
    )
    return ApiError(message, status_code=status_code, kind=kind, payload=payload)
