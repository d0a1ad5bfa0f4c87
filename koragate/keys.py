"""
Kora Gate SDK - Agent key material.

Agent secrets have the form ``kora_agent_sk_<base64(agent_id:hex_seed)>``.
Parsing is strict: a seed that is not exactly 32 bytes is rejected here
instead of producing signatures the service cannot verify.
"""

import base64
import binascii
from dataclasses import dataclass, field

from .exceptions import MalformedSecretError

AGENT_SECRET_PREFIX = "kora_agent_sk_"
SEED_LENGTH = 32


@dataclass(frozen=True)
class AgentKeyMaterial:
    """Agent identifier plus raw Ed25519 seed. Immutable, safe to share across items."""

    agent_id: str
    signing_seed: bytes = field(repr=False)

    def __post_init__(self) -> None:
        if len(self.signing_seed) != SEED_LENGTH:
            raise MalformedSecretError(
                f"Invalid key seed: expected {SEED_LENGTH} bytes, got {len(self.signing_seed)}"
            )

    def __repr__(self) -> str:
        return f"AgentKeyMaterial(agent_id={self.agent_id!r}, signing_seed=<redacted>)"


def parse_agent_secret(secret: str) -> AgentKeyMaterial:
    """
    Decode an agent secret into key material.

    Raises:
        MalformedSecretError: prefix missing, base64/hex decoding fails,
            separator absent, empty agent id, or seed length != 32 bytes.
    """
    if not isinstance(secret, str) or not secret.startswith(AGENT_SECRET_PREFIX):
        raise MalformedSecretError(
            f"Invalid agent secret: must start with {AGENT_SECRET_PREFIX}"
        )

    encoded = secret[len(AGENT_SECRET_PREFIX):].strip()
    try:
        decoded = base64.b64decode(encoded, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        raise MalformedSecretError("Invalid agent secret: payload is not valid base64") from None

    agent_id, separator, hex_seed = decoded.partition(":")
    if not separator:
        raise MalformedSecretError("Invalid agent secret format: missing key separator")
    if not agent_id:
        raise MalformedSecretError("Invalid agent secret format: empty agent id")

    try:
        seed = bytes.fromhex(hex_seed)
    except ValueError:
        raise MalformedSecretError("Invalid key seed: not a hex string") from None

    return AgentKeyMaterial(agent_id=agent_id, signing_seed=seed)


def format_agent_secret(agent_id: str, signing_seed: bytes) -> str:
    """Inverse of parse_agent_secret; used to provision and test credentials."""
    if len(signing_seed) != SEED_LENGTH:
        raise MalformedSecretError(
            f"Invalid key seed: expected {SEED_LENGTH} bytes, got {len(signing_seed)}"
        )
    payload = f"{agent_id}:{signing_seed.hex()}".encode("utf-8")
    return AGENT_SECRET_PREFIX + base64.b64encode(payload).decode("ascii")
