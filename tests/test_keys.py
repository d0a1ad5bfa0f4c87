"""
Tests for agent secret parsing.
"""

import base64

import pytest

from koragate.exceptions import InputValidationError, MalformedSecretError
from koragate.keys import (
    AGENT_SECRET_PREFIX,
    AgentKeyMaterial,
    format_agent_secret,
    parse_agent_secret,
)

SEED = bytes(range(32))


def _secret(payload: str) -> str:
    return AGENT_SECRET_PREFIX + base64.b64encode(payload.encode()).decode()


class TestParseAgentSecret:
    """Tests for parse_agent_secret."""

    def test_valid_secret(self):
        keys = parse_agent_secret(_secret(f"agent_001:{SEED.hex()}"))
        assert keys.agent_id == "agent_001"
        assert keys.signing_seed == SEED

    def test_round_trip_with_formatter(self):
        secret = format_agent_secret("agent_xyz", SEED)
        assert parse_agent_secret(secret) == AgentKeyMaterial("agent_xyz", SEED)

    def test_splits_on_first_colon(self):
        keys = parse_agent_secret(_secret(f"agent:{SEED.hex()}"))
        assert keys.agent_id == "agent"

    def test_missing_prefix(self):
        with pytest.raises(MalformedSecretError) as exc:
            parse_agent_secret(base64.b64encode(f"a:{SEED.hex()}".encode()).decode())
        assert "kora_agent_sk_" in str(exc.value)

    def test_invalid_base64(self):
        with pytest.raises(MalformedSecretError):
            parse_agent_secret(AGENT_SECRET_PREFIX + "!!!not-base64!!!")

    def test_missing_separator(self):
        with pytest.raises(MalformedSecretError) as exc:
            parse_agent_secret(_secret("agent_without_seed"))
        assert "separator" in str(exc.value)

    def test_empty_agent_id(self):
        with pytest.raises(MalformedSecretError):
            parse_agent_secret(_secret(f":{SEED.hex()}"))

    def test_non_hex_seed(self):
        with pytest.raises(MalformedSecretError):
            parse_agent_secret(_secret("agent:zz" * 16))

    def test_short_seed_rejected(self):
        with pytest.raises(MalformedSecretError) as exc:
            parse_agent_secret(_secret(f"agent:{SEED[:31].hex()}"))
        assert "expected 32 bytes, got 31" in str(exc.value)

    def test_long_seed_rejected(self):
        with pytest.raises(MalformedSecretError) as exc:
            parse_agent_secret(_secret(f"agent:{(SEED + b'x').hex()}"))
        assert "got 33" in str(exc.value)

    def test_non_string_rejected(self):
        with pytest.raises(MalformedSecretError):
            parse_agent_secret(None)

    def test_is_input_validation_error(self):
        assert issubclass(MalformedSecretError, InputValidationError)


class TestAgentKeyMaterial:
    """Tests for AgentKeyMaterial."""

    def test_repr_redacts_seed(self):
        keys = AgentKeyMaterial("agent_001", SEED)
        assert SEED.hex() not in repr(keys)
        assert "redacted" in repr(keys)

    def test_immutable(self):
        keys = AgentKeyMaterial("agent_001", SEED)
        with pytest.raises(Exception):
            keys.agent_id = "other"

    def test_wrong_length_rejected(self):
        with pytest.raises(MalformedSecretError):
            AgentKeyMaterial("agent_001", b"short")
