"""Ledger address value parsing.

Addresses and token identifiers share the same representation: ``0x`` followed
by exactly 40 hex digits. Parsed values are always returned in EIP-55 checksum
form so they can be compared and handed to the ledger client as-is.
"""

from __future__ import annotations

import re
from typing import NewType

from eth_utils import to_canonical_address, to_checksum_address

from .errors import InvalidEncodingError

Address = NewType("Address", str)
TokenIdentifier = NewType("TokenIdentifier", str)

ADDRESS_HEX_LENGTH = 40

_ADDRESS_RE = re.compile(r"0x[0-9a-fA-F]{40}")


def parse_address(value: str, *, field: str = "address") -> Address:
    """Parse a holder address. Raises InvalidEncodingError on malformed input."""
    if not isinstance(value, str) or not _ADDRESS_RE.fullmatch(value):
        raise InvalidEncodingError(
            f"Invalid {field}: expected 0x followed by {ADDRESS_HEX_LENGTH} hex digits"
        )
    return Address(to_checksum_address(value))


def parse_token_identifier(value: str) -> TokenIdentifier:
    """Parse a token contract address. Raises InvalidEncodingError on malformed input."""
    return TokenIdentifier(parse_address(value, field="token address"))


def address_bytes(address: str) -> bytes:
    """Return the raw 20-byte form of an already parsed address."""
    return to_canonical_address(address)
