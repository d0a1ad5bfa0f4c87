"""
Kora Gate SDK - HTTP client for the Kora authorization service.

Provides both synchronous and asynchronous clients. Each call is a single
attempt; retry policy belongs to the caller, who can safely resubmit with
the same intent id.
"""

import logging
from typing import Any, Optional, Union

from .classifier import classify_authorization, classify_budget
from .config import KoraCredentials
from .keys import AgentKeyMaterial
from .models import AuthorizationRequest, BudgetSnapshot, DecisionOutcome, HealthStatus, Unavailable
from .request import DEFAULT_TTL_SECONDS, build_authorization_request, build_budget_request
from .transport import (
    AsyncHttpxTransport,
    AsyncTransport,
    HttpxTransport,
    SendResult,
    Transport,
    TransportFailure,
)
from .validation import validate_required

logger = logging.getLogger("koragate.client")

AUTHORIZE_PATH = "/v1/authorize"
BUDGET_PATH = "/v1/mandates/{mandate_id}/budget"
HEALTH_PATH = "/health"


def _health_from_result(result: SendResult) -> HealthStatus:
    if isinstance(result, TransportFailure):
        return HealthStatus(healthy=False, error=f"{result.reason}: {result.detail}")
    if not 200 <= result.status_code < 300:
        return HealthStatus(healthy=False, error=f"HTTP {result.status_code}")
    data = result.body if isinstance(result.body, dict) else {}
    return HealthStatus(
        healthy=True,
        version=str(data.get("version", "unknown")),
        database=str(data.get("database", "unknown")),
    )


class _ClientBase:
    def __init__(
        self,
        credentials: KoraCredentials,
        key_material: Optional[AgentKeyMaterial] = None,
    ):
        self.credentials = credentials
        self.api_url = credentials.api_url
        self.key_material = key_material or credentials.key_material()

    @property
    def agent_id(self) -> str:
        return self.key_material.agent_id

    def _mandate(self, mandate_id: Optional[str]) -> str:
        mandate = mandate_id or self.credentials.mandate_id
        validate_required(mandate, "mandate_id")
        return mandate

    def _build_authorization(
        self,
        intent_id: str,
        amount_cents: int,
        currency: str,
        vendor_id: str,
        mandate_id: Optional[str],
        ttl_seconds: int,
        category: Optional[str],
        purpose: Optional[str],
    ) -> AuthorizationRequest:
        return build_authorization_request(
            self.key_material,
            mandate_id=self._mandate(mandate_id),
            intent_id=intent_id,
            amount_cents=amount_cents,
            currency=currency,
            vendor_id=vendor_id,
            ttl_seconds=ttl_seconds,
            category=category,
            purpose=purpose,
        )


class KoraClient(_ClientBase):
    """
    Synchronous client for the Kora authorization service.

    Example:
        ```python
        credentials = KoraCredentials(
            agent_secret="kora_agent_sk_...",
            mandate_id="mandate_abc123def456",
        )
        with KoraClient(credentials) as client:
            outcome = client.authorize(
                intent_id=derive_intent_id("exec-42", 0, "authorize"),
                amount_cents=5000,
                currency="EUR",
                vendor_id="aws",
            )
        ```
    """

    def __init__(
        self,
        credentials: KoraCredentials,
        transport: Optional[Transport] = None,
        key_material: Optional[AgentKeyMaterial] = None,
    ):
        super().__init__(credentials, key_material)
        self._transport = transport or HttpxTransport(timeout=credentials.timeout)

    def authorize(
        self,
        intent_id: str,
        amount_cents: int,
        currency: str,
        vendor_id: str,
        mandate_id: Optional[str] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        category: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> DecisionOutcome:
        """
        Submit a signed authorization request.

        Returns:
            Approved, Denied or Unavailable.

        Raises:
            InputValidationError: for invalid parameters (nothing is sent).
            ClientRequestError: when the service rejects the request (4xx).
        """
        request = self._build_authorization(
            intent_id, amount_cents, currency, vendor_id, mandate_id, ttl_seconds, category, purpose
        )
        result = self._transport.send(
            "POST", f"{self.api_url}{AUTHORIZE_PATH}", request.headers, request.body()
        )
        return classify_authorization(result, intent_id=intent_id, vendor_id=vendor_id)

    def check_budget(self, mandate_id: Optional[str] = None) -> Union[BudgetSnapshot, Unavailable]:
        """Query the remaining budget for a mandate without spending."""
        mandate = self._mandate(mandate_id)
        request = build_budget_request(self.key_material, mandate)
        result = self._transport.send(
            "POST",
            f"{self.api_url}{BUDGET_PATH.format(mandate_id=mandate)}",
            request.headers,
            request.body(),
        )
        return classify_budget(result)

    def health(self) -> HealthStatus:
        """Informational health probe; never used for gating decisions."""
        return _health_from_result(self._transport.send("GET", f"{self.api_url}{HEALTH_PATH}"))

    def close(self) -> None:
        """Close the underlying transport."""
        self._transport.close()

    def __enter__(self) -> "KoraClient":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


class AsyncKoraClient(_ClientBase):
    """
    Asynchronous client for the Kora authorization service.

    Example:
        ```python
        async with AsyncKoraClient(credentials) as client:
            budget = await client.check_budget()
        ```
    """

    def __init__(
        self,
        credentials: KoraCredentials,
        transport: Optional[AsyncTransport] = None,
        key_material: Optional[AgentKeyMaterial] = None,
    ):
        super().__init__(credentials, key_material)
        self._transport = transport or AsyncHttpxTransport(timeout=credentials.timeout)

    async def authorize(
        self,
        intent_id: str,
        amount_cents: int,
        currency: str,
        vendor_id: str,
        mandate_id: Optional[str] = None,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        category: Optional[str] = None,
        purpose: Optional[str] = None,
    ) -> DecisionOutcome:
        """Submit a signed authorization request."""
        request = self._build_authorization(
            intent_id, amount_cents, currency, vendor_id, mandate_id, ttl_seconds, category, purpose
        )
        result = await self._transport.send(
            "POST", f"{self.api_url}{AUTHORIZE_PATH}", request.headers, request.body()
        )
        return classify_authorization(result, intent_id=intent_id, vendor_id=vendor_id)

    async def check_budget(
        self, mandate_id: Optional[str] = None
    ) -> Union[BudgetSnapshot, Unavailable]:
        """Query the remaining budget for a mandate without spending."""
        mandate = self._mandate(mandate_id)
        request = build_budget_request(self.key_material, mandate)
        result = await self._transport.send(
            "POST",
            f"{self.api_url}{BUDGET_PATH.format(mandate_id=mandate)}",
            request.headers,
            request.body(),
        )
        return classify_budget(result)

    async def health(self) -> HealthStatus:
        """Informational health probe."""
        result = await self._transport.send("GET", f"{self.api_url}{HEALTH_PATH}")
        return _health_from_result(result)

    async def close(self) -> None:
        """Close the underlying transport."""
        await self._transport.aclose()

    async def __aenter__(self) -> "AsyncKoraClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()
