"""
Kora Gate SDK - Decision classification.

Maps a transport outcome to exactly one DecisionOutcome. Anything that is
not a well-formed APPROVED or DENIED response classifies as Unavailable.
Client errors (4xx other than 409) are raised, since they are neither a
decision nor a service failure.
"""

import logging
from typing import Any, Optional, Union, cast

from .exceptions import (
    CLIENT_ERRORS,
    ClientRequestError,
    RateLimitError,
    SealIntegrityError,
    UnavailableCause,
    UnavailableError,
)
from .models import (
    Approved,
    BudgetSnapshot,
    Decision,
    DecisionOutcome,
    Denied,
    PaymentInstruction,
    RemainingLimits,
    Seal,
    Unavailable,
)
from .transport import SendResult, TransportFailure, TransportResult

logger = logging.getLogger("koragate.classifier")

REPLAY_MISMATCH_STATUS = 409

_BUDGET_INT_FIELDS = (
    "daily_limit_cents",
    "daily_spent_cents",
    "daily_remaining_cents",
    "monthly_limit_cents",
    "monthly_spent_cents",
    "monthly_remaining_cents",
)


def _server_message(body: Any) -> str:
    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    return str(body.get("message") or body.get("detail") or "")


def _raise_client_error(result: TransportResult) -> None:
    status = result.status_code
    server_msg = _server_message(result.body)
    error_cls = CLIENT_ERRORS.get(status, ClientRequestError)
    messages = {
        400: f"Bad request: {server_msg or 'rejected by service'}",
        401: "Invalid credentials",
        403: "Forbidden",
        404: f"Not found: {server_msg or 'resource does not exist'}",
        429: "Rate limited, retry later",
    }
    message = messages.get(status, f"Request failed with status {status}")
    kwargs: dict[str, Any] = {
        "status_code": status,
        "response": result.body if isinstance(result.body, dict) else None,
    }
    if error_cls is RateLimitError:
        kwargs["retry_after"] = result.headers.get("retry-after") or result.headers.get(
            "Retry-After"
        )
    raise error_cls(message, **kwargs)


def _unavailable_from_transport(result: SendResult) -> Optional[Unavailable]:
    """Rules shared by every endpoint: network failure, 5xx, 4xx, replay mismatch."""
    if isinstance(result, TransportFailure):
        return Unavailable(
            cause=UnavailableCause.NETWORK_ERROR,
            detail=f"cannot reach service ({result.reason}: {result.detail})",
        )

    status = result.status_code
    if status >= 500:
        return Unavailable(
            cause=UnavailableCause.SERVER_ERROR,
            detail=f"server error HTTP {status}",
            status_code=status,
        )
    if status == REPLAY_MISMATCH_STATUS:
        reason = _server_message(result.body) or "intent replay mismatch"
        return Unavailable(
            cause=UnavailableCause.SERVER_ERROR,
            detail=f"HTTP 409 {reason}",
            status_code=status,
        )
    if 400 <= status < 500:
        _raise_client_error(result)
    if status != 200:
        return Unavailable(
            cause=UnavailableCause.SERVER_ERROR,
            detail=f"unexpected HTTP {status}",
            status_code=status,
        )
    if not isinstance(result.body, dict):
        return Unavailable(
            cause=UnavailableCause.SERVER_ERROR,
            detail="malformed response body",
            status_code=status,
        )
    return None


def normalize_authorization_body(body: dict[str, Any]) -> dict[str, Any]:
    """
    Fold the alternative response vocabularies into one shape.

    ``decision_id``/``authorization_id``, ``seal``/``notary_seal``,
    ``payment_instruction``/``payment`` and ``decision``/``status`` are
    accepted; the first name of each pair is the normalized one.
    """
    normalized = dict(body)
    normalized["decision"] = body.get("decision") or body.get("status")
    normalized["decision_id"] = body.get("decision_id") or body.get("authorization_id")
    seal = body.get("seal")
    normalized["seal"] = seal if seal is not None else body.get("notary_seal")
    payment = body.get("payment_instruction")
    normalized["payment_instruction"] = payment if payment is not None else body.get("payment")
    return normalized


def _is_seal(value: Any) -> bool:
    return isinstance(value, dict) and bool(value.get("signature"))


def _integrity_violation(detail: str, status_code: int) -> Unavailable:
    logger.warning("Protocol violation in authorization response: %s", detail)
    return Unavailable(
        cause=UnavailableCause.SERVER_ERROR,
        detail=detail,
        status_code=status_code,
        integrity_violation=True,
    )


def classify_authorization(
    result: SendResult,
    intent_id: Optional[str] = None,
    vendor_id: Optional[str] = None,
) -> DecisionOutcome:
    """
    Classify the result of an authorize call.

    Returns:
        Approved, Denied or Unavailable.

    Raises:
        ClientRequestError: for 4xx statuses other than 409.
    """
    unavailable = _unavailable_from_transport(result)
    if unavailable is not None:
        logger.warning("Authorization unavailable intent_id=%s: %s", intent_id, unavailable.detail)
        return unavailable

    result = cast(TransportResult, result)
    data = normalize_authorization_body(result.body)
    decision = data["decision"]
    seal = data["seal"]

    if decision == Decision.APPROVED.value:
        if not _is_seal(seal):
            return _integrity_violation("APPROVED decision without a notary seal", 200)
        if not data["decision_id"]:
            return _integrity_violation("APPROVED decision without a decision id", 200)
        payment = data["payment_instruction"]
        limits = data.get("limits_after_approval")
        if limits is not None and not isinstance(limits, dict):
            logger.warning("Malformed limits_after_approval intent_id=%s", intent_id)
            return Unavailable(
                cause=UnavailableCause.SERVER_ERROR,
                detail="malformed limits_after_approval",
                status_code=result.status_code,
            )
        return Approved(
            decision_id=data["decision_id"],
            intent_id=data.get("intent_id") or intent_id,
            amount_cents=data.get("amount_cents"),
            currency=data.get("currency"),
            vendor_id=data.get("vendor_id") or vendor_id,
            seal=Seal.from_dict(seal),
            payment_instruction=(
                PaymentInstruction.from_dict(payment) if isinstance(payment, dict) else None
            ),
            remaining_limits=RemainingLimits.from_dict(limits),
            executable=data.get("executable", True) is not False,
            evaluated_at=data.get("evaluated_at"),
            expires_at=data.get("expires_at"),
        )

    if decision == Decision.DENIED.value:
        if seal is not None:
            return _integrity_violation("DENIED decision carries a notary seal", 200)
        denial = data.get("denial") if isinstance(data.get("denial"), dict) else {}
        actionable = denial.get("actionable") if isinstance(denial.get("actionable"), dict) else {}
        reason_code = data.get("reason_code") or denial.get("reason_code") or "UNKNOWN"
        return Denied(
            decision_id=data["decision_id"],
            intent_id=data.get("intent_id") or intent_id,
            reason_code=reason_code,
            message=denial.get("message") or f"Denied: {reason_code}",
            hint=denial.get("hint"),
            available_cents=actionable.get("available_cents"),
            failed_check=denial.get("failed_check"),
            evaluated_at=data.get("evaluated_at"),
        )

    logger.warning("Unrecognized decision %r intent_id=%s", decision, intent_id)
    return Unavailable(
        cause=UnavailableCause.SERVER_ERROR,
        detail=f"unrecognized decision {decision!r}",
        status_code=result.status_code,
    )


def classify_budget(result: SendResult) -> Union[BudgetSnapshot, Unavailable]:
    """
    Classify the result of a budget query.

    Returns:
        BudgetSnapshot, or Unavailable when the snapshot cannot be trusted.

    Raises:
        ClientRequestError: for 4xx statuses other than 409.
    """
    unavailable = _unavailable_from_transport(result)
    if unavailable is not None:
        logger.warning("Budget query unavailable: %s", unavailable.detail)
        return unavailable

    result = cast(TransportResult, result)
    snapshot = BudgetSnapshot.from_dict(result.body)
    for name in _BUDGET_INT_FIELDS:
        value = getattr(snapshot, name)
        if not isinstance(value, int) or isinstance(value, bool):
            return Unavailable(
                cause=UnavailableCause.SERVER_ERROR,
                detail=f"malformed budget response: {name}={value!r}",
                status_code=result.status_code,
            )
    if not snapshot.is_balanced:
        logger.warning("Budget arithmetic mismatch for mandate %s", snapshot.mandate_id)
        return Unavailable(
            cause=UnavailableCause.SERVER_ERROR,
            detail="budget snapshot spent + remaining != limit",
            status_code=result.status_code,
            integrity_violation=True,
        )
    return snapshot


def raise_for_unavailable(
    outcome: Any,
    item_index: Optional[int] = None,
    partial_result: Any = None,
) -> None:
    """Convert an Unavailable outcome into the matching fail-closed exception."""
    if not isinstance(outcome, Unavailable):
        return
    error_cls = SealIntegrityError if outcome.integrity_violation else UnavailableError
    raise error_cls(
        outcome.detail,
        cause=outcome.cause,
        item_index=item_index,
        partial_result=partial_result,
        status_code=outcome.status_code,
    )
