"""
Kora Gate SDK - Budget check, authorize, and branch.

For each item the gate optionally checks the mandate budget, then submits a
signed authorization with an intent id derived from the execution context,
and routes the item to one of three channels: approved, denied, insufficient.

An unavailable service at any step raises UnavailableError for that item.
It is never folded into the denied or insufficient channels.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional, Union

from .classifier import raise_for_unavailable
from .exceptions import UnavailableError
from .idempotency import derive_intent_id
from .models import (
    Approved,
    BudgetSnapshot,
    Decision,
    Denied,
    InsufficientBudget,
    Unavailable,
)
from .request import DEFAULT_TTL_SECONDS
from .validation import validate_authorization_params, validate_non_negative_int

logger = logging.getLogger("koragate.gate")

GateOutcome = Union[Approved, Denied, InsufficientBudget]


@dataclass
class GateConfig:
    """Gate behaviour shared by every item.

    Attributes:
        pre_check_budget: Query the budget before authorizing. Default True.
        minimum_required_cents: Remaining daily budget required to proceed.
            0 means "use the requested amount".
        ttl_seconds: Freshness window sent with each authorization.
        operation: Operation name mixed into the intent id.
    """

    pre_check_budget: bool = True
    minimum_required_cents: int = 0
    ttl_seconds: int = DEFAULT_TTL_SECONDS
    operation: str = "gate"


@dataclass
class GateItem:
    """One workflow item to gate."""

    amount_cents: int
    currency: str
    vendor_id: str
    mandate_id: Optional[str] = None
    category: Optional[str] = None
    purpose: Optional[str] = None


@dataclass(frozen=True)
class ExecutionContext:
    """Caller execution identity; the only input to intent id derivation besides the operation."""

    execution_id: str
    item_index: int


@dataclass
class GateEntry:
    """An item routed to a channel."""

    item_index: int
    outcome: GateOutcome
    intent_id: Optional[str] = None

    @property
    def decision(self) -> Decision:
        return self.outcome.decision

    def to_dict(self) -> dict[str, Any]:
        result = self.outcome.to_dict()
        result["item_index"] = self.item_index
        if self.intent_id:
            result["intent_id"] = self.intent_id
        return result


@dataclass
class GateResult:
    """Items grouped by output channel, each channel in item order."""

    approved: list[GateEntry] = field(default_factory=list)
    denied: list[GateEntry] = field(default_factory=list)
    insufficient: list[GateEntry] = field(default_factory=list)

    def add(self, entry: GateEntry) -> None:
        channel = {
            Decision.APPROVED: self.approved,
            Decision.DENIED: self.denied,
            Decision.INSUFFICIENT: self.insufficient,
        }[entry.decision]
        channel.append(entry)

    def channels(self) -> tuple[list[GateEntry], list[GateEntry], list[GateEntry]]:
        return self.approved, self.denied, self.insufficient

    def __len__(self) -> int:
        return len(self.approved) + len(self.denied) + len(self.insufficient)


def budget_threshold(config: GateConfig, amount_cents: int) -> int:
    if config.minimum_required_cents > 0:
        return config.minimum_required_cents
    return amount_cents


def budget_shortfall(
    snapshot: BudgetSnapshot, config: GateConfig, item: GateItem, mandate_id: str
) -> Optional[InsufficientBudget]:
    """Return an InsufficientBudget outcome if the snapshot cannot cover the item."""
    threshold = budget_threshold(config, item.amount_cents)
    if (
        snapshot.daily_remaining_cents >= threshold
        and snapshot.is_active
        and snapshot.spend_allowed
    ):
        return None
    return InsufficientBudget(
        mandate_id=mandate_id,
        remaining_cents=snapshot.daily_remaining_cents,
        required_cents=threshold,
        requested_cents=item.amount_cents,
        daily_limit_cents=snapshot.daily_limit_cents,
        status=snapshot.status,
        spend_allowed=snapshot.spend_allowed,
    )


class _GateBase:
    def __init__(self, client: Any, config: Optional[GateConfig] = None):
        self.client = client
        self.config = config or GateConfig()
        validate_non_negative_int(self.config.minimum_required_cents, "minimum_required_cents")

    def _prepare(self, item: GateItem, context: ExecutionContext) -> tuple[str, str]:
        """Validate the item locally and derive its intent id; nothing is sent."""
        mandate_id = item.mandate_id or getattr(self.client.credentials, "mandate_id", None)
        validate_authorization_params(
            mandate_id=mandate_id,
            amount_cents=item.amount_cents,
            currency=item.currency,
            vendor_id=item.vendor_id,
            ttl_seconds=self.config.ttl_seconds,
        )
        intent_id = derive_intent_id(context.execution_id, context.item_index, self.config.operation)
        return mandate_id, intent_id

    def _check_snapshot(
        self,
        snapshot: Union[BudgetSnapshot, Unavailable],
        item: GateItem,
        context: ExecutionContext,
        mandate_id: str,
    ) -> Optional[GateEntry]:
        raise_for_unavailable(snapshot, item_index=context.item_index)
        shortfall = budget_shortfall(snapshot, self.config, item, mandate_id)
        if shortfall is None:
            return None
        logger.info(
            "Item %s insufficient: %s", context.item_index, shortfall.message
        )
        return GateEntry(item_index=context.item_index, outcome=shortfall)

    def _route(self, outcome: Any, context: ExecutionContext, intent_id: str) -> GateEntry:
        raise_for_unavailable(outcome, item_index=context.item_index)
        logger.info(
            "Item %s routed to %s intent_id=%s",
            context.item_index,
            outcome.decision.value,
            intent_id,
        )
        return GateEntry(item_index=context.item_index, outcome=outcome, intent_id=intent_id)

    def _authorize_kwargs(self, item: GateItem, mandate_id: str, intent_id: str) -> dict[str, Any]:
        return {
            "intent_id": intent_id,
            "amount_cents": item.amount_cents,
            "currency": item.currency,
            "vendor_id": item.vendor_id,
            "mandate_id": mandate_id,
            "ttl_seconds": self.config.ttl_seconds,
            "category": item.category,
            "purpose": item.purpose,
        }


class KoraGate(_GateBase):
    """
    Synchronous gate.

    ``client`` needs ``check_budget(mandate_id)`` and ``authorize(**kwargs)``,
    as provided by KoraClient.

    Example:
        ```python
        gate = KoraGate(client)
        result = gate.run(items, execution_id="exec-42")
        for entry in result.approved:
            pay(entry)
        ```
    """

    def evaluate(self, item: GateItem, context: ExecutionContext) -> GateEntry:
        """
        Gate one item.

        Raises:
            InputValidationError: for invalid item parameters.
            ClientRequestError: when the service rejects a request (4xx).
            UnavailableError: when no decision could be obtained.
        """
        mandate_id, intent_id = self._prepare(item, context)

        if self.config.pre_check_budget:
            snapshot = self.client.check_budget(mandate_id)
            entry = self._check_snapshot(snapshot, item, context, mandate_id)
            if entry is not None:
                return entry

        outcome = self.client.authorize(**self._authorize_kwargs(item, mandate_id, intent_id))
        return self._route(outcome, context, intent_id)

    def run(self, items: Iterable[GateItem], execution_id: str) -> GateResult:
        """Gate items in order. The first UnavailableError aborts the batch."""
        result = GateResult()
        for index, item in enumerate(items):
            try:
                entry = self.evaluate(item, ExecutionContext(execution_id, index))
            except UnavailableError as e:
                e.partial_result = result
                raise
            result.add(entry)
        return result


class AsyncKoraGate(_GateBase):
    """
    Asynchronous gate; ``client`` is an AsyncKoraClient or equivalent.

    Items are independent, so ``run`` evaluates up to ``concurrency`` of them
    at once. The shared key material is read-only.
    """

    async def evaluate(self, item: GateItem, context: ExecutionContext) -> GateEntry:
        """Gate one item. Raises like KoraGate.evaluate."""
        mandate_id, intent_id = self._prepare(item, context)

        if self.config.pre_check_budget:
            snapshot = await self.client.check_budget(mandate_id)
            entry = self._check_snapshot(snapshot, item, context, mandate_id)
            if entry is not None:
                return entry

        outcome = await self.client.authorize(
            **self._authorize_kwargs(item, mandate_id, intent_id)
        )
        return self._route(outcome, context, intent_id)

    async def run(
        self,
        items: Iterable[GateItem],
        execution_id: str,
        concurrency: int = 4,
    ) -> GateResult:
        """
        Gate items concurrently.

        On the first failure outstanding items are cancelled and the error is
        raised; items classified before that keep their outcomes on
        ``UnavailableError.partial_result``.
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def bounded(index: int, item: GateItem) -> GateEntry:
            async with semaphore:
                return await self.evaluate(item, ExecutionContext(execution_id, index))

        tasks = [asyncio.ensure_future(bounded(i, item)) for i, item in enumerate(items)]
        if not tasks:
            return GateResult()

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        result = GateResult()
        first_error: Optional[BaseException] = None
        for task in tasks:
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                first_error = first_error or error
                continue
            result.add(task.result())

        if first_error is not None:
            if isinstance(first_error, UnavailableError):
                first_error.partial_result = result
            raise first_error
        return result
