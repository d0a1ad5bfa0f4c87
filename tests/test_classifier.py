"""
Tests for decision classification.
"""

import copy

import pytest

from koragate.classifier import (
    classify_authorization,
    classify_budget,
    normalize_authorization_body,
    raise_for_unavailable,
)
from koragate.exceptions import (
    AuthenticationError,
    BadRequestError,
    ClientRequestError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    SealIntegrityError,
    UnavailableCause,
    UnavailableError,
)
from koragate.models import Approved, BudgetSnapshot, Denied, Unavailable
from koragate.transport import TransportFailure, TransportResult

MOCK_APPROVED = {
    "decision": "APPROVED",
    "decision_id": "dec_test_001",
    "reason_code": "OK",
    "amount_cents": 5000,
    "currency": "EUR",
    "executable": True,
    "payment_instruction": {
        "recipient_iban": "DE89370400440532013000",
        "recipient_name": "Amazon Web Services EMEA SARL",
        "recipient_bic": "COBADEFFXXX",
        "reference": "KORA-dec_test_001",
    },
    "seal": {
        "algorithm": "Ed25519",
        "key_id": "kora_prod_key_v1",
        "signature": "dGVzdF9zaWduYXR1cmU=",
        "payload_hash": "sha256:abc123",
        "timestamp": "2026-03-05T10:00:00Z",
    },
    "limits_after_approval": {
        "daily_remaining_cents": 45000,
        "monthly_remaining_cents": 1550000,
    },
    "evaluated_at": "2026-03-05T10:00:00Z",
    "expires_at": "2026-03-05T10:05:00Z",
}

MOCK_DENIED = {
    "decision": "DENIED",
    "decision_id": "dec_test_002",
    "reason_code": "DAILY_LIMIT_EXCEEDED",
    "amount_cents": 5000,
    "currency": "EUR",
    "executable": False,
    "seal": None,
    "denial": {
        "message": "Transaction would exceed daily limit",
        "hint": "Daily limit is 1,000.00. Current spend: 960.00.",
        "actionable": {"available_cents": 4000},
        "failed_check": "daily_limit",
    },
    "evaluated_at": "2026-03-05T10:00:00Z",
}

MOCK_BUDGET = {
    "mandate_id": "mandate_abc123def456",
    "currency": "EUR",
    "status": "active",
    "daily": {"limit_cents": 100000, "spent_cents": 45000, "remaining_cents": 55000},
    "monthly": {"limit_cents": 2000000, "spent_cents": 450000, "remaining_cents": 1550000},
    "spend_allowed": True,
}


def ok(body) -> TransportResult:
    return TransportResult(status_code=200, body=body)


class TestFailClosed:
    """Everything that is not a recognised decision is Unavailable."""

    @pytest.mark.parametrize("status", [500, 502, 503, 504])
    def test_server_errors(self, status):
        outcome = classify_authorization(TransportResult(status_code=status, body=None))
        assert isinstance(outcome, Unavailable)
        assert outcome.cause == UnavailableCause.SERVER_ERROR
        assert outcome.status_code == status

    @pytest.mark.parametrize("reason", ["connection_error", "timeout", "network_error"])
    def test_transport_failures(self, reason):
        outcome = classify_authorization(TransportFailure(reason=reason, detail="ECONNREFUSED"))
        assert isinstance(outcome, Unavailable)
        assert outcome.cause == UnavailableCause.NETWORK_ERROR

    def test_replay_mismatch(self):
        result = TransportResult(status_code=409, body={"message": "INTENT_REPLAY_MISMATCH"})
        outcome = classify_authorization(result)
        assert isinstance(outcome, Unavailable)
        assert "INTENT_REPLAY_MISMATCH" in outcome.detail

    def test_unrecognized_decision(self):
        outcome = classify_authorization(ok({"decision": "MAYBE", "decision_id": "d"}))
        assert isinstance(outcome, Unavailable)

    def test_missing_decision(self):
        assert isinstance(classify_authorization(ok({"decision_id": "d"})), Unavailable)

    def test_non_json_body(self):
        result = TransportResult(status_code=200, body=None, text="<html>")
        assert isinstance(classify_authorization(result), Unavailable)

    def test_non_object_body(self):
        assert isinstance(classify_authorization(ok(["APPROVED"])), Unavailable)

    def test_unexpected_success_status(self):
        result = TransportResult(status_code=202, body=MOCK_APPROVED)
        assert isinstance(classify_authorization(result), Unavailable)

    def test_lowercase_decision_not_accepted(self):
        body = dict(MOCK_APPROVED, decision="approved")
        assert isinstance(classify_authorization(ok(body)), Unavailable)

    @pytest.mark.parametrize("limits", [["not", "an", "object"], "daily", 5000])
    def test_non_object_limits(self, limits):
        body = dict(MOCK_APPROVED, limits_after_approval=limits)
        outcome = classify_authorization(ok(body))
        assert isinstance(outcome, Unavailable)
        assert outcome.cause == UnavailableCause.SERVER_ERROR
        assert "limits_after_approval" in outcome.detail


class TestClientErrors:
    """4xx responses are raised as client errors, not classified as outcomes."""

    @pytest.mark.parametrize(
        "status,error_cls",
        [
            (400, BadRequestError),
            (401, AuthenticationError),
            (403, ForbiddenError),
            (404, NotFoundError),
            (429, RateLimitError),
            (422, ClientRequestError),
        ],
    )
    def test_status_mapping(self, status, error_cls):
        with pytest.raises(error_cls) as exc:
            classify_authorization(TransportResult(status_code=status, body={"message": "nope"}))
        assert exc.value.status_code == status
        assert not isinstance(exc.value, UnavailableError)

    def test_bad_request_includes_server_message(self):
        with pytest.raises(BadRequestError) as exc:
            classify_authorization(
                TransportResult(status_code=400, body={"error": {"message": "amount too small"}})
            )
        assert "amount too small" in str(exc.value)

    def test_rate_limit_retry_after(self):
        result = TransportResult(status_code=429, body=None, headers={"retry-after": "30"})
        with pytest.raises(RateLimitError) as exc:
            classify_authorization(result)
        assert exc.value.retry_after == "30"


class TestApproved:
    """Tests for APPROVED classification."""

    def test_approved_fields(self):
        outcome = classify_authorization(ok(MOCK_APPROVED), intent_id="intent-1", vendor_id="aws")
        assert isinstance(outcome, Approved)
        assert outcome.decision_id == "dec_test_001"
        assert outcome.intent_id == "intent-1"
        assert outcome.vendor_id == "aws"
        assert outcome.seal.key_id == "kora_prod_key_v1"
        assert outcome.payment_instruction.recipient_iban == "DE89370400440532013000"
        assert outcome.payment_instruction.reference == "KORA-dec_test_001"
        assert outcome.remaining_limits.daily_remaining_cents == 45000
        assert outcome.remaining_limits.monthly_remaining_cents == 1550000
        assert outcome.executable is True

    def test_approved_without_seal_is_integrity_violation(self):
        body = dict(MOCK_APPROVED, seal=None)
        outcome = classify_authorization(ok(body))
        assert isinstance(outcome, Unavailable)
        assert outcome.integrity_violation

    def test_approved_with_empty_seal_signature(self):
        body = copy.deepcopy(MOCK_APPROVED)
        body["seal"]["signature"] = ""
        assert isinstance(classify_authorization(ok(body)), Unavailable)

    def test_legacy_vocabulary(self):
        body = copy.deepcopy(MOCK_APPROVED)
        body["authorization_id"] = body.pop("decision_id")
        body["notary_seal"] = body.pop("seal")
        body["payment"] = body.pop("payment_instruction")
        outcome = classify_authorization(ok(body))
        assert isinstance(outcome, Approved)
        assert outcome.decision_id == "dec_test_001"
        assert outcome.seal.signature == "dGVzdF9zaWduYXR1cmU="
        assert outcome.payment_instruction.recipient_bic == "COBADEFFXXX"

    def test_to_dict(self):
        data = classify_authorization(ok(MOCK_APPROVED)).to_dict()
        assert data["decision"] == "APPROVED"
        assert data["seal"]["algorithm"] == "Ed25519"
        assert data["daily_remaining_cents"] == 45000


class TestDenied:
    """Tests for DENIED classification."""

    def test_denied_fields(self):
        outcome = classify_authorization(ok(MOCK_DENIED))
        assert isinstance(outcome, Denied)
        assert outcome.reason_code == "DAILY_LIMIT_EXCEEDED"
        assert outcome.message == "Transaction would exceed daily limit"
        assert outcome.hint.startswith("Daily limit")
        assert outcome.available_cents == 4000
        assert outcome.retry_with_cents == 4000
        assert outcome.failed_check == "daily_limit"

    def test_denied_with_seal_is_integrity_violation(self):
        body = dict(MOCK_DENIED, seal=MOCK_APPROVED["seal"])
        outcome = classify_authorization(ok(body))
        assert isinstance(outcome, Unavailable)
        assert outcome.integrity_violation

    def test_denied_without_denial_block(self):
        body = {"decision": "DENIED", "decision_id": "d", "reason_code": "VENDOR_BLOCKED"}
        outcome = classify_authorization(ok(body))
        assert isinstance(outcome, Denied)
        assert outcome.message == "Denied: VENDOR_BLOCKED"
        assert outcome.available_cents is None


class TestNormalizeAuthorizationBody:
    """Tests for normalize_authorization_body."""

    def test_prefers_primary_names(self):
        body = {"decision_id": "a", "authorization_id": "b", "seal": {"x": 1}, "notary_seal": {}}
        data = normalize_authorization_body(body)
        assert data["decision_id"] == "a"
        assert data["seal"] == {"x": 1}

    def test_status_as_decision(self):
        assert normalize_authorization_body({"status": "DENIED"})["decision"] == "DENIED"


class TestClassifyBudget:
    """Tests for classify_budget."""

    def test_nested_budget(self):
        snapshot = classify_budget(ok(MOCK_BUDGET))
        assert isinstance(snapshot, BudgetSnapshot)
        assert snapshot.daily_remaining_cents == 55000
        assert snapshot.monthly_limit_cents == 2000000
        assert snapshot.spend_allowed is True

    def test_flat_budget(self):
        body = {
            "mandate_id": "m",
            "currency": "EUR",
            "status": "active",
            "daily_limit_cents": 100000,
            "daily_spent_cents": 45000,
            "daily_remaining_cents": 55000,
            "monthly_limit_cents": 2000000,
            "monthly_spent_cents": 450000,
            "monthly_remaining_cents": 1550000,
            "spend_allowed": True,
        }
        snapshot = classify_budget(ok(body))
        assert isinstance(snapshot, BudgetSnapshot)
        assert snapshot.daily_spent_cents == 45000

    def test_unbalanced_budget_fails_closed(self):
        body = copy.deepcopy(MOCK_BUDGET)
        body["daily"]["remaining_cents"] = 60000
        outcome = classify_budget(ok(body))
        assert isinstance(outcome, Unavailable)
        assert outcome.integrity_violation

    def test_non_integer_budget_fails_closed(self):
        body = copy.deepcopy(MOCK_BUDGET)
        body["daily"]["remaining_cents"] = "55000"
        assert isinstance(classify_budget(ok(body)), Unavailable)

    def test_server_error(self):
        assert isinstance(classify_budget(TransportResult(status_code=503)), Unavailable)

    def test_network_error(self):
        outcome = classify_budget(TransportFailure(reason="timeout"))
        assert outcome.cause == UnavailableCause.NETWORK_ERROR

    def test_not_found_raises(self):
        with pytest.raises(NotFoundError):
            classify_budget(TransportResult(status_code=404, body={"message": "no mandate"}))


class TestRaiseForUnavailable:
    """Tests for raise_for_unavailable."""

    def test_passes_through_decisions(self):
        raise_for_unavailable(classify_authorization(ok(MOCK_APPROVED)))
        raise_for_unavailable(classify_authorization(ok(MOCK_DENIED)))

    def test_raises_unavailable(self):
        outcome = classify_authorization(TransportResult(status_code=503))
        with pytest.raises(UnavailableError) as exc:
            raise_for_unavailable(outcome, item_index=3)
        assert exc.value.item_index == 3
        assert exc.value.status_code == 503
        assert "No authorization occurred" in str(exc.value)
        assert "Do not proceed" in str(exc.value)

    def test_raises_integrity_error(self):
        outcome = classify_authorization(ok(dict(MOCK_APPROVED, seal=None)))
        with pytest.raises(SealIntegrityError):
            raise_for_unavailable(outcome)

    def test_network_message(self):
        outcome = classify_authorization(TransportFailure(reason="connection_error"))
        with pytest.raises(UnavailableError) as exc:
            raise_for_unavailable(outcome)
        assert exc.value.cause == UnavailableCause.NETWORK_ERROR
        assert "unreachable" in str(exc.value)
