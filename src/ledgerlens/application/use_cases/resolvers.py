"""Thin wrappers around the ledger client.

Resolvers never retry, cache or time out on their own. Any collaborator
failure is re-raised as ``UpstreamUnavailableError`` chained to the original.
"""

from __future__ import annotations

from ...domain.addresses import Address, TokenIdentifier
from ...domain.errors import UpstreamUnavailableError
from ...domain.ledger_client_protocol import LedgerClientProtocol
from ...timing import log_timing

MAX_NONCE = 2**64 - 1


class BalanceResolver:
    """Resolves the ERC-20 balance of a holder."""

    def __init__(self, ledger_client: LedgerClientProtocol) -> None:
        self.ledger_client = ledger_client

    @log_timing("resolve_balance")
    async def resolve(self, token_address: TokenIdentifier, holder: Address) -> int:
        try:
            balance = await self.ledger_client.get_token_balance(token_address, holder)
        except Exception as e:
            raise UpstreamUnavailableError(
                f"Failed to get token balance of {holder} for {token_address}: {e}"
            ) from e
        if not isinstance(balance, int) or balance < 0:
            raise UpstreamUnavailableError(
                f"Ledger returned an invalid balance for {holder}: {balance!r}"
            )
        return balance


class NonceResolver:
    """Resolves the pending nonce of a holder."""

    def __init__(self, ledger_client: LedgerClientProtocol) -> None:
        self.ledger_client = ledger_client

    @log_timing("resolve_nonce")
    async def resolve(self, holder: Address) -> int:
        try:
            nonce = await self.ledger_client.get_pending_nonce(holder)
        except Exception as e:
            raise UpstreamUnavailableError(
                f"Failed to get nonce of {holder}: {e}"
            ) from e
        if not isinstance(nonce, int) or not 0 <= nonce <= MAX_NONCE:
            raise UpstreamUnavailableError(
                f"Ledger returned an invalid nonce for {holder}: {nonce!r}"
            )
        return nonce
