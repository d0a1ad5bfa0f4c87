"""
Kora Gate SDK - Input validation helpers.

Provides validation functions for client-side parameter checking before a
request is signed. Every failure here is local and fatal for the affected item.
"""

import re
from typing import Any, Optional

from .exceptions import InputValidationError, InvalidTtlError

_CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")


def validate_required(value: Any, field_name: str) -> None:
    """Validate that a required field is not None or empty."""
    if value is None:
        raise InputValidationError(f"{field_name} is required", field=field_name)
    if isinstance(value, str) and not value.strip():
        raise InputValidationError(f"{field_name} cannot be empty", field=field_name, value=value)


def validate_string_length(
    value: str,
    field_name: str,
    min_length: Optional[int] = None,
    max_length: Optional[int] = None,
) -> None:
    """Validate string length constraints."""
    if value is None:
        return

    if min_length is not None and len(value) < min_length:
        raise InputValidationError(
            f"{field_name} must be at least {min_length} characters",
            field=field_name,
            value=value,
        )

    if max_length is not None and len(value) > max_length:
        raise InputValidationError(
            f"{field_name} must be at most {max_length} characters",
            field=field_name,
            value=value,
        )


def validate_positive_int(value: int, field_name: str) -> None:
    """Validate that a number is a positive integer."""
    if value is None:
        return

    if not isinstance(value, int) or isinstance(value, bool):
        raise InputValidationError(
            f"{field_name} must be an integer",
            field=field_name,
            value=value,
        )

    if value <= 0:
        raise InputValidationError(
            f"{field_name} must be positive",
            field=field_name,
            value=value,
        )


def validate_non_negative_int(value: int, field_name: str) -> None:
    """Validate that a number is an integer >= 0."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise InputValidationError(
            f"{field_name} must be an integer",
            field=field_name,
            value=value,
        )

    if value < 0:
        raise InputValidationError(
            f"{field_name} cannot be negative",
            field=field_name,
            value=value,
        )


def validate_currency(value: str, field_name: str = "currency") -> str:
    """Validate an ISO 4217 style code and return it upper-cased."""
    validate_required(value, field_name)
    if not isinstance(value, str) or not _CURRENCY_PATTERN.match(value):
        raise InputValidationError(
            f"{field_name} must be a 3-letter ISO 4217 code",
            field=field_name,
            value=value,
        )
    return value.upper()


def validate_ttl(value: Any) -> None:
    """Validate ttl_seconds; any non-positive or non-integer value is rejected."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise InvalidTtlError(value)


def validate_authorization_params(
    mandate_id: str,
    amount_cents: int,
    currency: str,
    vendor_id: str,
    ttl_seconds: int,
) -> str:
    """
    Validate parameters for an authorization request.

    Returns:
        The normalized (upper-cased) currency code.
    """
    validate_required(mandate_id, "mandate_id")
    validate_required(vendor_id, "vendor_id")
    validate_string_length(vendor_id, "vendor_id", max_length=255)
    validate_required(amount_cents, "amount_cents")
    validate_positive_int(amount_cents, "amount_cents")
    validate_ttl(ttl_seconds)
    return validate_currency(currency)
