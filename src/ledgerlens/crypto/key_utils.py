from __future__ import annotations

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from eth_keys import keys

from ..domain.addresses import Address


def generate_private_key() -> ec.EllipticCurvePrivateKey:
    """Generate a fresh secp256k1 private key."""
    return ec.generate_private_key(ec.SECP256K1())


def load_private_key_from_pem(pem_str: str) -> ec.EllipticCurvePrivateKey:
    """Load a secp256k1 private key from a PEM-formatted string."""
    private_key = serialization.load_pem_private_key(pem_str.encode(), password=None)
    if not isinstance(private_key, ec.EllipticCurvePrivateKey) or not isinstance(
        private_key.curve, ec.SECP256K1
    ):
        raise ValueError("Private key must be an EC key on the secp256k1 curve")
    return private_key


def private_key_to_pem(private_key: ec.EllipticCurvePrivateKey) -> str:
    pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return pem.decode("utf-8")


def to_eth_private_key(private_key: ec.EllipticCurvePrivateKey) -> keys.PrivateKey:
    """Convert a cryptography key into an eth-keys key for recoverable signing."""
    private_value = private_key.private_numbers().private_value
    return keys.PrivateKey(private_value.to_bytes(32, "big"))


def address_from_private_key(private_key: ec.EllipticCurvePrivateKey) -> Address:
    """Derive the checksummed ledger address owned by a private key."""
    return Address(to_eth_private_key(private_key).public_key.to_checksum_address())
