"""Data Transfer Objects for the account service application layer."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class GetAccountRequestDTO(BaseModel):
    """Unary account query: claimed address plus base64 signature over the auth message."""

    ethereum_address: str
    crypto_signature: str


class GetAccountResponseDTO(BaseModel):
    """Gas token balance (decimal text) and pending nonce of the queried address."""

    gastoken_balance: str
    wallet_nonce: int = Field(ge=0, lt=2**64)


class GetAccountsRequestDTO(BaseModel):
    """One inbound stream message: a batch of holders and a single token contract."""

    ethereum_addresses: list[str]
    erc20_token_address: str


class GetAccountsResponseDTO(BaseModel):
    """One outbound stream message: the balance of one holder for one token."""

    ethereum_address: str
    erc20_balance: str


class StreamEndDTO(BaseModel):
    """Sent by the client to signal it has no more requests."""

    type: Literal["end"] = "end"


class StreamErrorDTO(BaseModel):
    """Last frame sent by the server before aborting a stream."""

    type: Literal["error"] = "error"
    code: str
    detail: str
