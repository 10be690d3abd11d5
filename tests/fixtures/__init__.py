"""Test fixtures for in-memory implementations."""

from .async_iter import aiter_of
from .fake_ledger_client import FakeLedgerClient

__all__ = ["FakeLedgerClient", "aiter_of"]
