"""Demo and benchmark driver for the account API."""

from __future__ import annotations

import argparse
import asyncio
import secrets
import time

from .application.dtos import GetAccountRequestDTO, GetAccountsRequestDTO
from .crypto.key_utils import (
    address_from_private_key,
    generate_private_key,
    load_private_key_from_pem,
)
from .crypto.signatures import encode_signature, sign_auth_message
from .envs.client_env import Settings, get_settings
from .infrastructure.accounts_client import AccountsClient

WELL_KNOWN_TOKENS = [
    "0xdAC17F958D2ee523a2206206994597C13D831ec7",  # USDT
    "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",  # UNI
    "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48",  # USDC
    "0x514910771af9ca656af840dff83e8264ecf986ca",  # LINK
    "0x95aD61b0a150d79219B9c481f44e9943f8e8887b",  # SHIB
]

BENCH_RUNS = [(100, 3), (1000, 4), (10000, 5)]


def random_addresses(count: int) -> list[str]:
    return [f"0x{secrets.token_hex(20)}" for _ in range(count)]


async def query_own_account(settings: Settings) -> None:
    if settings.client_private_key_pem:
        private_key = load_private_key_from_pem(settings.client_private_key_pem)
    else:
        private_key = generate_private_key()

    address = address_from_private_key(private_key)
    signature_b64 = encode_signature(sign_auth_message(private_key))

    async with AccountsClient(settings.base_url) as client:
        resp = await client.get_account(
            GetAccountRequestDTO(
                ethereum_address=address, crypto_signature=signature_b64
            )
        )
    print(f"Address: {address}")
    print(f"Gastoken Balance: {resp.gastoken_balance}, Wallet Nonce: {resp.wallet_nonce}")


async def bench_get_accounts(
    client: AccountsClient, addresses: list[str], token_count: int
) -> None:
    start = time.perf_counter()
    requests = [
        GetAccountsRequestDTO(ethereum_addresses=addresses, erc20_token_address=token)
        for token in WELL_KNOWN_TOKENS[:token_count]
    ]
    received = 0
    async for _ in client.get_accounts(requests):
        received += 1
    elapsed = time.perf_counter() - start
    print(
        f"{len(addresses)} addresses x {len(requests)} tokens: "
        f"{received} balances in {elapsed:.3f}s"
    )


async def run_benchmark(settings: Settings) -> None:
    addresses = random_addresses(max(count for count, _ in BENCH_RUNS))
    async with AccountsClient(settings.base_url) as client:
        for count, token_count in BENCH_RUNS:
            await bench_get_accounts(client, addresses[:count], token_count)


def main() -> None:
    parser = argparse.ArgumentParser(description="LedgerLens account API client")
    parser.add_argument(
        "command",
        choices=["account", "bench"],
        help="'account' queries the signer's own account, 'bench' times the balance stream",
    )
    args = parser.parse_args()

    settings = get_settings()
    if args.command == "account":
        asyncio.run(query_own_account(settings))
    else:
        asyncio.run(run_benchmark(settings))


if __name__ == "__main__":
    main()
