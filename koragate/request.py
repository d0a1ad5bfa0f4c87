"""
Kora Gate SDK - Signed request construction.

Signed fields and auxiliary metadata are built as separate structures; only
the signed structure is canonicalized and signed, and the two are merged
when the transport payload is produced.
"""

import base64
import logging
import secrets
from typing import Optional

from .canonical import canonicalize
from .keys import AgentKeyMaterial
from .models import AuthorizationRequest, AuxiliaryFields, BudgetRequest, SignedFieldSet
from .signing import sign_message
from .validation import validate_authorization_params, validate_required

logger = logging.getLogger("koragate.request")

DEFAULT_TTL_SECONDS = 300
NONCE_BYTES = 16


def generate_nonce() -> str:
    """Fresh random nonce; never derived from the intent id."""
    return base64.b64encode(secrets.token_bytes(NONCE_BYTES)).decode("ascii")


def auth_headers(key_material: AgentKeyMaterial, signature: str) -> dict[str, str]:
    return {
        "Content-Type": "application/json",
        "X-Agent-Id": key_material.agent_id,
        "X-Agent-Signature": signature,
    }


def build_authorization_request(
    key_material: AgentKeyMaterial,
    mandate_id: str,
    intent_id: str,
    amount_cents: int,
    currency: str,
    vendor_id: str,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    category: Optional[str] = None,
    purpose: Optional[str] = None,
    nonce: Optional[str] = None,
) -> AuthorizationRequest:
    """
    Build and sign an authorization request.

    Args:
        key_material: Parsed agent key material.
        mandate_id: Mandate the spend is charged against.
        intent_id: Idempotency token, usually from derive_intent_id().
        amount_cents: Positive amount in integer minor units.
        currency: 3-letter currency code; upper-cased before signing.
        vendor_id: Vendor identifier.
        ttl_seconds: Freshness window the service should honour.
        category: Optional unsigned metadata.
        purpose: Optional unsigned metadata.
        nonce: Override for the random nonce (tests only).

    Returns:
        AuthorizationRequest with payload, signature and headers.

    Raises:
        InputValidationError: for invalid parameters.
        InvalidTtlError: when ttl_seconds is not a positive integer.
        NonCanonicalValueError: when a signed field has no canonical encoding.
    """
    validate_required(intent_id, "intent_id")
    normalized_currency = validate_authorization_params(
        mandate_id=mandate_id,
        amount_cents=amount_cents,
        currency=currency,
        vendor_id=vendor_id,
        ttl_seconds=ttl_seconds,
    )

    signed_fields = SignedFieldSet(
        intent_id=intent_id,
        agent_id=key_material.agent_id,
        mandate_id=mandate_id,
        amount_cents=amount_cents,
        currency=normalized_currency,
        vendor_id=vendor_id,
        nonce=nonce if nonce is not None else generate_nonce(),
        ttl_seconds=ttl_seconds,
    )
    canonical = canonicalize(signed_fields.to_dict())
    signature = sign_message(canonical, key_material.signing_seed)

    logger.debug(
        "Built authorization request intent_id=%s mandate_id=%s amount_cents=%s",
        intent_id,
        mandate_id,
        amount_cents,
    )
    return AuthorizationRequest(
        signed_fields=signed_fields,
        auxiliary=AuxiliaryFields(category=category or None, purpose=purpose or None),
        canonical=canonical,
        signature=signature,
        headers=auth_headers(key_material, signature),
    )


def build_budget_request(key_material: AgentKeyMaterial, mandate_id: str) -> BudgetRequest:
    """Build a signed budget query; the body is the canonical encoding of the mandate id."""
    validate_required(mandate_id, "mandate_id")
    canonical = canonicalize({"mandate_id": mandate_id})
    signature = sign_message(canonical, key_material.signing_seed)
    return BudgetRequest(
        mandate_id=mandate_id,
        canonical=canonical,
        signature=signature,
        headers=auth_headers(key_material, signature),
    )
