"""
Kora Gate SDK - Ed25519 request signing.
"""

import base64
import binascii
import logging

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .keys import SEED_LENGTH

logger = logging.getLogger("koragate.signing")

SIGNATURE_LENGTH = 64


def _private_key(seed: bytes) -> Ed25519PrivateKey:
    if len(seed) != SEED_LENGTH:
        # Seeds are validated when the secret is parsed; reaching this is a bug.
        raise AssertionError(f"Ed25519 seed must be {SEED_LENGTH} bytes, got {len(seed)}")
    return Ed25519PrivateKey.from_private_bytes(seed)


def sign_message(message: bytes, seed: bytes) -> str:
    """Sign ``message`` with the Ed25519 key derived from ``seed``; returns base64 text."""
    signature = _private_key(seed).sign(message)
    return base64.b64encode(signature).decode("ascii")


def public_key_bytes(seed: bytes) -> bytes:
    return _private_key(seed).public_key().public_bytes(Encoding.Raw, PublicFormat.Raw)


def public_key_b64(seed: bytes) -> str:
    return base64.b64encode(public_key_bytes(seed)).decode("ascii")


def verify_signature(message: bytes, signature_b64: str, public_key: bytes) -> bool:
    """Verify a base64 Ed25519 signature against a raw 32-byte public key."""
    try:
        signature = base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError):
        return False

    if len(signature) != SIGNATURE_LENGTH or len(public_key) != 32:
        return False

    try:
        Ed25519PublicKey.from_public_bytes(public_key).verify(signature, message)
    except InvalidSignature:
        logger.debug("Signature verification failed")
        return False
    return True
