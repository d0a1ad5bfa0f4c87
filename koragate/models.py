"""
Kora Gate SDK - Data models for signed requests and authorization outcomes.
"""

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union

from .exceptions import UnavailableCause


class Decision(str, Enum):
    """Output channel an item is routed to."""

    APPROVED = "APPROVED"
    DENIED = "DENIED"
    INSUFFICIENT = "INSUFFICIENT"
    UNAVAILABLE = "UNAVAILABLE"


class MandateStatus(str, Enum):
    """Server-side mandate status as reported by the budget endpoint."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    REVOKED = "revoked"
    EXPIRED = "expired"


# ==================== Requests ====================


@dataclass(frozen=True)
class SignedFieldSet:
    """
    Exactly the fields covered by the agent signature.

    Metadata such as category or purpose lives in AuxiliaryFields and is
    never part of this structure.
    """

    intent_id: str
    agent_id: str
    mandate_id: str
    amount_cents: int
    currency: str
    vendor_id: str
    nonce: str
    ttl_seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "intent_id": self.intent_id,
            "agent_id": self.agent_id,
            "mandate_id": self.mandate_id,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "vendor_id": self.vendor_id,
            "nonce": self.nonce,
            "ttl_seconds": self.ttl_seconds,
        }


@dataclass(frozen=True)
class AuxiliaryFields:
    """Unsigned metadata the service accepts alongside a signed request."""

    category: Optional[str] = None
    purpose: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        if self.category:
            result["category"] = self.category
        if self.purpose:
            result["purpose"] = self.purpose
        return result


@dataclass(frozen=True)
class AuthorizationRequest:
    """A signed authorization request ready for transport."""

    signed_fields: SignedFieldSet
    auxiliary: AuxiliaryFields
    canonical: bytes = field(repr=False)
    signature: str = field(repr=False)
    headers: dict[str, str] = field(repr=False)

    @property
    def intent_id(self) -> str:
        return self.signed_fields.intent_id

    @property
    def payload(self) -> dict[str, Any]:
        """Signed fields merged with auxiliary metadata; signed fields win on overlap."""
        payload = self.auxiliary.to_dict()
        payload.update(self.signed_fields.to_dict())
        return payload

    def body(self) -> bytes:
        return json.dumps(self.payload, ensure_ascii=False, separators=(",", ":")).encode("utf-8")


@dataclass(frozen=True)
class BudgetRequest:
    """A signed budget query for one mandate."""

    mandate_id: str
    canonical: bytes = field(repr=False)
    signature: str = field(repr=False)
    headers: dict[str, str] = field(repr=False)

    def body(self) -> bytes:
        return self.canonical


# ==================== Response artifacts ====================


@dataclass
class Seal:
    """Notary seal the service attaches to an approval."""

    algorithm: str
    key_id: str
    signature: str
    payload_hash: Optional[str] = None
    timestamp: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "key_id": self.key_id,
            "signature": self.signature,
            "payload_hash": self.payload_hash,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Seal":
        return cls(
            algorithm=data.get("algorithm", ""),
            key_id=data.get("key_id") or data.get("public_key_id", ""),
            signature=data.get("signature", ""),
            payload_hash=data.get("payload_hash"),
            timestamp=data.get("timestamp"),
        )


@dataclass
class PaymentInstruction:
    """Payment routing details returned with an executable approval."""

    recipient_iban: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_bic: Optional[str] = None
    reference: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "recipient_iban": self.recipient_iban,
            "recipient_name": self.recipient_name,
            "recipient_bic": self.recipient_bic,
            "reference": self.reference,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PaymentInstruction":
        return cls(
            recipient_iban=data.get("recipient_iban"),
            recipient_name=data.get("recipient_name"),
            recipient_bic=data.get("recipient_bic"),
            reference=data.get("reference") or data.get("payment_reference"),
        )


@dataclass
class RemainingLimits:
    daily_remaining_cents: Optional[int] = None
    monthly_remaining_cents: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "daily_remaining_cents": self.daily_remaining_cents,
            "monthly_remaining_cents": self.monthly_remaining_cents,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "RemainingLimits":
        if not isinstance(data, dict):
            data = {}
        return cls(
            daily_remaining_cents=data.get("daily_remaining_cents"),
            monthly_remaining_cents=data.get("monthly_remaining_cents"),
        )


# ==================== Outcomes ====================


@dataclass
class Approved:
    """The service approved the intent and sealed the decision."""

    decision_id: str
    intent_id: Optional[str]
    amount_cents: Optional[int]
    currency: Optional[str]
    vendor_id: Optional[str]
    seal: Seal
    payment_instruction: Optional[PaymentInstruction] = None
    remaining_limits: RemainingLimits = field(default_factory=RemainingLimits)
    executable: bool = True
    evaluated_at: Optional[str] = None
    expires_at: Optional[str] = None

    decision = Decision.APPROVED

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "decision_id": self.decision_id,
            "intent_id": self.intent_id,
            "amount_cents": self.amount_cents,
            "currency": self.currency,
            "vendor_id": self.vendor_id,
            "executable": self.executable,
            "seal": self.seal.to_dict(),
            "payment": self.payment_instruction.to_dict() if self.payment_instruction else None,
            "daily_remaining_cents": self.remaining_limits.daily_remaining_cents,
            "monthly_remaining_cents": self.remaining_limits.monthly_remaining_cents,
            "evaluated_at": self.evaluated_at,
            "expires_at": self.expires_at,
        }


@dataclass
class Denied:
    """The service rendered a policy denial. A normal outcome, not an error."""

    decision_id: Optional[str]
    intent_id: Optional[str]
    reason_code: str
    message: str
    hint: Optional[str] = None
    available_cents: Optional[int] = None
    failed_check: Optional[str] = None
    evaluated_at: Optional[str] = None

    decision = Decision.DENIED

    @property
    def retry_with_cents(self) -> Optional[int]:
        """Amount the service indicated would still fit, if any."""
        return self.available_cents

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "decision_id": self.decision_id,
            "intent_id": self.intent_id,
            "reason_code": self.reason_code,
            "message": self.message,
            "hint": self.hint,
            "retry_with_cents": self.available_cents,
            "failed_check": self.failed_check,
            "evaluated_at": self.evaluated_at,
        }


@dataclass
class InsufficientBudget:
    """Budget pre-check short-circuit; no authorize call was made."""

    mandate_id: str
    remaining_cents: int
    required_cents: int
    requested_cents: int
    daily_limit_cents: Optional[int] = None
    status: Optional[str] = None
    spend_allowed: bool = True

    decision = Decision.INSUFFICIENT

    @property
    def message(self) -> str:
        return (
            f"Budget insufficient: {self.remaining_cents} cents remaining, "
            f"{self.required_cents} required"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "mandate_id": self.mandate_id,
            "daily_remaining_cents": self.remaining_cents,
            "daily_limit_cents": self.daily_limit_cents,
            "required_cents": self.required_cents,
            "requested_cents": self.requested_cents,
            "status": self.status,
            "spend_allowed": self.spend_allowed,
            "message": self.message,
        }


@dataclass
class Unavailable:
    """No definitive decision. Terminal for the item: the protected action must not run."""

    cause: UnavailableCause
    detail: str
    status_code: Optional[int] = None
    integrity_violation: bool = False

    decision = Decision.UNAVAILABLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "decision": self.decision.value,
            "cause": self.cause.value,
            "detail": self.detail,
            "status_code": self.status_code,
            "integrity_violation": self.integrity_violation,
        }


DecisionOutcome = Union[Approved, Denied, InsufficientBudget, Unavailable]


# ==================== Budget ====================


def _round_half_up_percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return (part * 200 + whole) // (whole * 2)


@dataclass(frozen=True)
class BudgetSnapshot:
    """
    Read-only view of a mandate's budget at query time.

    Invariant: spent + remaining == limit for both the daily and monthly window.
    """

    mandate_id: str
    currency: str
    daily_limit_cents: int
    daily_spent_cents: int
    daily_remaining_cents: int
    monthly_limit_cents: int
    monthly_spent_cents: int
    monthly_remaining_cents: int
    status: str
    spend_allowed: bool
    resets_at: Optional[str] = None

    @property
    def is_balanced(self) -> bool:
        return (
            self.daily_spent_cents + self.daily_remaining_cents == self.daily_limit_cents
            and self.monthly_spent_cents + self.monthly_remaining_cents
            == self.monthly_limit_cents
        )

    @property
    def is_active(self) -> bool:
        return self.status == MandateStatus.ACTIVE.value

    @property
    def can_spend(self) -> bool:
        return self.is_active and self.spend_allowed and self.daily_remaining_cents > 0

    @property
    def percent_daily_used(self) -> int:
        return _round_half_up_percent(self.daily_spent_cents, self.daily_limit_cents)

    @property
    def percent_monthly_used(self) -> int:
        return _round_half_up_percent(self.monthly_spent_cents, self.monthly_limit_cents)

    def to_dict(self) -> dict[str, Any]:
        return {
            "mandate_id": self.mandate_id,
            "currency": self.currency,
            "daily_limit_cents": self.daily_limit_cents,
            "daily_spent_cents": self.daily_spent_cents,
            "daily_remaining_cents": self.daily_remaining_cents,
            "monthly_limit_cents": self.monthly_limit_cents,
            "monthly_spent_cents": self.monthly_spent_cents,
            "monthly_remaining_cents": self.monthly_remaining_cents,
            "status": self.status,
            "spend_allowed": self.spend_allowed,
            "can_spend": self.can_spend,
            "percent_daily_used": self.percent_daily_used,
            "resets_at": self.resets_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BudgetSnapshot":
        # Accept both the nested ("daily": {...}) and flat ("daily_limit_cents") shapes.
        daily = data.get("daily") if isinstance(data.get("daily"), dict) else {}
        monthly = data.get("monthly") if isinstance(data.get("monthly"), dict) else {}

        def pick(window: dict[str, Any], prefix: str, name: str) -> int:
            value = window.get(f"{name}_cents")
            if value is None:
                value = data.get(f"{prefix}_{name}_cents", 0)
            return value

        return cls(
            mandate_id=data.get("mandate_id", ""),
            currency=data.get("currency", ""),
            daily_limit_cents=pick(daily, "daily", "limit"),
            daily_spent_cents=pick(daily, "daily", "spent"),
            daily_remaining_cents=pick(daily, "daily", "remaining"),
            monthly_limit_cents=pick(monthly, "monthly", "limit"),
            monthly_spent_cents=pick(monthly, "monthly", "spent"),
            monthly_remaining_cents=pick(monthly, "monthly", "remaining"),
            status=data.get("status", ""),
            spend_allowed=data.get("spend_allowed") is True,
            resets_at=data.get("resets_at"),
        )


@dataclass
class HealthStatus:
    healthy: bool
    version: str = "unknown"
    database: str = "unknown"
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "healthy": self.healthy,
            "version": self.version,
            "database": self.database,
        }
        if self.error:
            result["error"] = self.error
        return result
