"""
Kora Gate SDK - Signed, idempotent spend authorization for workflow steps.

Turns a workflow step into a signed authorization request against the Kora
service and routes the verdict to approved, denied or insufficient. Any
failure to obtain a decision fails closed.
"""

from .canonical import canonicalize, sort_keys_deep
from .classifier import (
    classify_authorization,
    classify_budget,
    normalize_authorization_body,
    raise_for_unavailable,
)
from .client import AsyncKoraClient, KoraClient
from .config import KoraCredentials
from .exceptions import (
    AuthenticationError,
    BadRequestError,
    ClientRequestError,
    ForbiddenError,
    InputValidationError,
    InvalidTtlError,
    KoraGateError,
    MalformedSecretError,
    NonCanonicalValueError,
    NotFoundError,
    RateLimitError,
    SealIntegrityError,
    UnavailableCause,
    UnavailableError,
)
from .gate import (
    AsyncKoraGate,
    ExecutionContext,
    GateConfig,
    GateEntry,
    GateItem,
    GateResult,
    KoraGate,
)
from .idempotency import derive_intent_id
from .keys import AgentKeyMaterial, format_agent_secret, parse_agent_secret
from .models import (
    Approved,
    AuthorizationRequest,
    AuxiliaryFields,
    BudgetRequest,
    BudgetSnapshot,
    Decision,
    DecisionOutcome,
    Denied,
    HealthStatus,
    InsufficientBudget,
    MandateStatus,
    PaymentInstruction,
    RemainingLimits,
    Seal,
    SignedFieldSet,
    Unavailable,
)
from .request import build_authorization_request, build_budget_request, generate_nonce
from .signing import public_key_b64, sign_message, verify_signature
from .transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    Transport,
    TransportFailure,
    TransportResult,
)

__version__ = "0.1.0"
__all__ = [
    "KoraClient",
    "AsyncKoraClient",
    "KoraCredentials",
    "KoraGate",
    "AsyncKoraGate",
    "GateConfig",
    "GateItem",
    "GateEntry",
    "GateResult",
    "ExecutionContext",
    "AgentKeyMaterial",
    "parse_agent_secret",
    "format_agent_secret",
    "canonicalize",
    "sort_keys_deep",
    "sign_message",
    "verify_signature",
    "public_key_b64",
    "derive_intent_id",
    "generate_nonce",
    "build_authorization_request",
    "build_budget_request",
    "classify_authorization",
    "classify_budget",
    "normalize_authorization_body",
    "raise_for_unavailable",
    "Transport",
    "AsyncTransport",
    "HttpxTransport",
    "AsyncHttpxTransport",
    "TransportResult",
    "TransportFailure",
    "Decision",
    "DecisionOutcome",
    "Approved",
    "Denied",
    "InsufficientBudget",
    "Unavailable",
    "SignedFieldSet",
    "AuxiliaryFields",
    "AuthorizationRequest",
    "BudgetRequest",
    "BudgetSnapshot",
    "MandateStatus",
    "Seal",
    "PaymentInstruction",
    "RemainingLimits",
    "HealthStatus",
    "KoraGateError",
    "InputValidationError",
    "MalformedSecretError",
    "NonCanonicalValueError",
    "InvalidTtlError",
    "ClientRequestError",
    "BadRequestError",
    "AuthenticationError",
    "ForbiddenError",
    "NotFoundError",
    "RateLimitError",
    "UnavailableCause",
    "UnavailableError",
    "SealIntegrityError",
]
