"""Dependencies for the account service API."""

from __future__ import annotations

from functools import lru_cache

from ..application.use_cases.account_query import AccountQueryService
from ..application.use_cases.balance_stream import BalanceStreamService
from ..application.use_cases.resolvers import BalanceResolver, NonceResolver
from ..crypto.signatures import FixedMessageSignatureVerifier
from ..domain.addresses import parse_token_identifier
from ..envs.server_env import Settings, get_settings
from ..infrastructure.ledger import Web3LedgerClient


@lru_cache()
def get_settings_dependency() -> Settings:
    return get_settings()


@lru_cache()
def get_ledger_client_dependency() -> Web3LedgerClient:
    """Process-wide ledger handle shared by every request."""
    settings = get_settings_dependency()
    return Web3LedgerClient(settings.eth_rpc_url, timeout=settings.rpc_timeout)


@lru_cache()
def get_signature_verifier() -> FixedMessageSignatureVerifier:
    return FixedMessageSignatureVerifier()


def get_balance_resolver() -> BalanceResolver:
    return BalanceResolver(get_ledger_client_dependency())


def get_nonce_resolver() -> NonceResolver:
    return NonceResolver(get_ledger_client_dependency())


def get_account_query_service() -> AccountQueryService:
    settings = get_settings_dependency()
    return AccountQueryService(
        verifier=get_signature_verifier(),
        balance_resolver=get_balance_resolver(),
        nonce_resolver=get_nonce_resolver(),
        gas_token_address=parse_token_identifier(settings.gas_token_address),
    )


def get_balance_stream_service() -> BalanceStreamService:
    settings = get_settings_dependency()
    return BalanceStreamService(
        get_balance_resolver(), max_in_flight=settings.stream_max_in_flight
    )


async def close_ledger_client() -> None:
    """Close the shared ledger handle if it was ever created."""
    if get_ledger_client_dependency.cache_info().currsize:
        await get_ledger_client_dependency().aclose()
        get_ledger_client_dependency.cache_clear()
