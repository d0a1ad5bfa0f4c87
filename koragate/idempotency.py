"""
Kora Gate SDK - Deterministic intent ids.

The same (execution id, item index, operation) always maps to the same
intent id, so a retried workflow execution resubmits the same intent and
the service can deduplicate it.
"""

import hashlib

from .exceptions import InputValidationError
from .validation import validate_non_negative_int, validate_required

INTENT_ID_PREFIX = "kora"


def derive_intent_id(execution_id: str, item_index: int, operation: str) -> str:
    """
    Derive a UUID-shaped intent id from caller execution context.

    Args:
        execution_id: Identity of the workflow execution.
        item_index: Zero-based index of the item within that execution.
        operation: Name of the operation (e.g. ``"gate"``, ``"authorize"``).

    Returns:
        Lowercase 8-4-4-4-12 hex string taken from a SHA-256 digest.
    """
    validate_required(execution_id, "execution_id")
    validate_non_negative_int(item_index, "item_index")
    validate_required(operation, "operation")
    # The seed is colon-joined; a colon in the trailing field would let
    # ("a:0", 1, "op") and ("a", 0, "1:op") share a seed.
    if ":" in operation:
        raise InputValidationError(
            "operation cannot contain ':'", field="operation", value=operation
        )

    seed = f"{INTENT_ID_PREFIX}:{execution_id}:{item_index}:{operation}"
    digest = hashlib.sha256(seed.encode("utf-8")).hexdigest()
    return "-".join(
        [digest[0:8], digest[8:12], digest[12:16], digest[16:20], digest[20:32]]
    )
