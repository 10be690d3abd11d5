"""Shared pytest fixtures for account service tests."""

from __future__ import annotations

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from ledgerlens.application.use_cases.account_query import AccountQueryService
from ledgerlens.application.use_cases.balance_stream import BalanceStreamService
from ledgerlens.application.use_cases.resolvers import BalanceResolver, NonceResolver
from ledgerlens.crypto.key_utils import address_from_private_key, generate_private_key
from ledgerlens.crypto.signatures import (
    FixedMessageSignatureVerifier,
    encode_signature,
    sign_auth_message,
)
from ledgerlens.domain.addresses import Address, parse_token_identifier
from ledgerlens.envs.server_env import USDT_TOKEN_ADDRESS
from tests.fixtures import FakeLedgerClient

# ============================================================================
# Key Fixtures
# ============================================================================


@pytest.fixture
def client_private_key() -> ec.EllipticCurvePrivateKey:
    """Generate a secp256k1 client key for testing."""
    return generate_private_key()


@pytest.fixture
def client_address(client_private_key: ec.EllipticCurvePrivateKey) -> Address:
    return address_from_private_key(client_private_key)


@pytest.fixture
def client_signature_b64(client_private_key: ec.EllipticCurvePrivateKey) -> str:
    """Base64 signature over the auth message by the client key."""
    return encode_signature(sign_auth_message(client_private_key))


@pytest.fixture
def other_private_key() -> ec.EllipticCurvePrivateKey:
    return generate_private_key()


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def fake_ledger() -> FakeLedgerClient:
    return FakeLedgerClient()


@pytest.fixture
def account_query_service(fake_ledger: FakeLedgerClient) -> AccountQueryService:
    return AccountQueryService(
        verifier=FixedMessageSignatureVerifier(),
        balance_resolver=BalanceResolver(fake_ledger),
        nonce_resolver=NonceResolver(fake_ledger),
        gas_token_address=parse_token_identifier(USDT_TOKEN_ADDRESS),
    )


@pytest.fixture
def balance_stream_service(fake_ledger: FakeLedgerClient) -> BalanceStreamService:
    return BalanceStreamService(BalanceResolver(fake_ledger))
