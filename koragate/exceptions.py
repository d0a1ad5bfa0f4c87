"""
Kora Gate SDK - Custom exceptions for error handling.
"""

from enum import Enum
from typing import Any, Optional

NO_AUTHORIZATION_NOTICE = (
    "No authorization occurred. Do not proceed with the protected action."
)


class KoraGateError(Exception):
    """Base exception for all Kora Gate SDK errors."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response


class InputValidationError(KoraGateError):
    """Raised when input validation fails before a request is built."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None) -> None:
        super().__init__(message, status_code=None, response=None)
        self.field = field
        self.value = value


class MalformedSecretError(InputValidationError):
    """Raised when an agent secret cannot be parsed into key material."""

    def __init__(self, message: str) -> None:
        # The secret itself is never attached to the error.
        super().__init__(message, field="agent_secret")


class NonCanonicalValueError(InputValidationError):
    """Raised when a value has no canonical encoding (floats, NaN, unknown types)."""

    def __init__(self, message: str, path: str = "", value: Any = None) -> None:
        super().__init__(message, field=path or None, value=value)
        self.path = path


class InvalidTtlError(InputValidationError):
    """Raised when ttl_seconds is not a positive integer."""

    def __init__(self, value: Any) -> None:
        super().__init__(
            f"ttl_seconds must be a positive integer, got {value!r}",
            field="ttl_seconds",
            value=value,
        )


class ClientRequestError(KoraGateError):
    """
    Raised when the service rejects a request as malformed, unauthorized or throttled.

    This is not an authorization outcome: the request never reached a decision.
    """

    pass


class BadRequestError(ClientRequestError):
    """Raised on HTTP 400."""

    pass


class AuthenticationError(ClientRequestError):
    """Raised on HTTP 401, when the agent credentials are rejected."""

    pass


class ForbiddenError(ClientRequestError):
    """Raised on HTTP 403."""

    pass


class NotFoundError(ClientRequestError):
    """Raised on HTTP 404, typically an unknown mandate."""

    pass


class RateLimitError(ClientRequestError):
    """Raised on HTTP 429."""

    def __init__(self, message: str, retry_after: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.retry_after = retry_after


class UnavailableCause(str, Enum):
    """Why a definitive decision could not be obtained."""

    NETWORK_ERROR = "network_error"
    SERVER_ERROR = "server_error"


class UnavailableError(KoraGateError):
    """
    Fail-closed error: no decision was obtained, so the protected action must not run.

    Raised for transport failures, 5xx responses, replay mismatches and any
    response that is not recognisably APPROVED or DENIED.
    """

    def __init__(
        self,
        detail: str,
        cause: UnavailableCause = UnavailableCause.SERVER_ERROR,
        item_index: Optional[int] = None,
        partial_result: Any = None,
        **kwargs: Any,
    ) -> None:
        label = "unreachable" if cause == UnavailableCause.NETWORK_ERROR else "unavailable"
        super().__init__(f"Kora {label}: {detail}. {NO_AUTHORIZATION_NOTICE}", **kwargs)
        self.detail = detail
        self.cause = cause
        self.item_index = item_index
        self.partial_result = partial_result


class SealIntegrityError(UnavailableError):
    """Raised when a response violates the protocol (seal rules, budget arithmetic)."""

    pass


CLIENT_ERRORS: dict[int, type[ClientRequestError]] = {
    400: BadRequestError,
    401: AuthenticationError,
    403: ForbiddenError,
    404: NotFoundError,
    429: RateLimitError,
}
