"""Signature-gated single account query."""

from __future__ import annotations

from ...crypto.signatures import SignatureVerifier, decode_signature
from ...domain.addresses import TokenIdentifier, parse_address
from ...domain.errors import UnauthenticatedError
from ..dtos import GetAccountRequestDTO, GetAccountResponseDTO
from .resolvers import BalanceResolver, NonceResolver


class AccountQueryService:
    """Service orchestrating verification, balance lookup and nonce lookup."""

    def __init__(
        self,
        verifier: SignatureVerifier,
        balance_resolver: BalanceResolver,
        nonce_resolver: NonceResolver,
        gas_token_address: TokenIdentifier,
    ):
        self.verifier = verifier
        self.balance_resolver = balance_resolver
        self.nonce_resolver = nonce_resolver
        self.gas_token_address = gas_token_address

    async def get_account(self, dto: GetAccountRequestDTO) -> GetAccountResponseDTO:
        """Return the gas token balance and pending nonce of a verified address.

        Raises:
            InvalidEncodingError: Malformed address or signature encoding.
            UnauthenticatedError: Signature does not recover to the address.
            UpstreamUnavailableError: Ledger lookup failed.
        """
        address = parse_address(dto.ethereum_address, field="ethereum_address")
        signature = decode_signature(dto.crypto_signature)

        if not self.verifier.verify(address, signature):
            raise UnauthenticatedError("Invalid signature")

        balance = await self.balance_resolver.resolve(self.gas_token_address, address)
        nonce = await self.nonce_resolver.resolve(address)

        return GetAccountResponseDTO(gastoken_balance=str(balance), wallet_nonce=nonce)
