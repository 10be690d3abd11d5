"""Ledger client implementations."""

from .web3_client import Web3LedgerClient

__all__ = ["Web3LedgerClient"]
