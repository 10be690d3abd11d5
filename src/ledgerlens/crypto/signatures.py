"""Fixed-message signature scheme used to gate account queries.

A client proves it controls an address by signing the SHA-256 digest of a
constant message with the address's secp256k1 key. The signature is the
65-byte recoverable form ``r || s || v`` with ``v`` in {0, 1}.

The message is the same for every client and every request, so a signature
stays valid forever and can be replayed by anyone who observes it. The
verifier sits behind ``SignatureVerifier`` so a per-session challenge can
replace it without touching the request handlers.
"""

from __future__ import annotations

import base64
import binascii
from typing import Protocol

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec
from eth_keys import keys
from eth_keys.exceptions import BadSignature, ValidationError

from ..domain.addresses import Address, address_bytes
from ..domain.errors import InvalidEncodingError
from ..timing import log_timing
from .key_utils import to_eth_private_key

AUTH_MESSAGE = b"some message"
SIGNATURE_LENGTH = 65


def auth_message_hash(message: bytes = AUTH_MESSAGE) -> bytes:
    """Return the SHA-256 digest that signatures are computed over."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(message)
    return digest.finalize()


def sign_auth_message(
    private_key: ec.EllipticCurvePrivateKey, message: bytes = AUTH_MESSAGE
) -> bytes:
    """Sign the auth message digest and return the 65-byte recoverable signature."""
    eth_key = to_eth_private_key(private_key)
    return eth_key.sign_msg_hash(auth_message_hash(message)).to_bytes()


def encode_signature(signature: bytes) -> str:
    return base64.b64encode(signature).decode("utf-8")


def decode_signature(signature_b64: str) -> bytes:
    """Strictly decode base64 signature text. Raises InvalidEncodingError."""
    if not signature_b64:
        raise InvalidEncodingError("Signature is required")
    try:
        return base64.b64decode(signature_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidEncodingError(
            "Invalid signature encoding (expected base64)"
        ) from e


class SignatureVerifier(Protocol):
    """Checks that a signature proves possession of the claimed address's key."""

    def verify(self, claimed_address: Address, signature: bytes) -> bool: ...


class FixedMessageSignatureVerifier:
    """Verifies signatures over a constant message by public key recovery."""

    def __init__(self, message: bytes = AUTH_MESSAGE) -> None:
        self._message_hash = auth_message_hash(message)

    @log_timing("verify_signature")
    def verify(self, claimed_address: Address, signature: bytes) -> bool:
        if len(signature) != SIGNATURE_LENGTH:
            return False
        try:
            recovered = keys.Signature(
                signature_bytes=signature
            ).recover_public_key_from_msg_hash(self._message_hash)
        except (BadSignature, ValidationError, ValueError):
            return False
        return recovered.to_canonical_address() == address_bytes(claimed_address)
