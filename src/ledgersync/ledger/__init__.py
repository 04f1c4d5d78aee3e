"""Ledger layer for ledgersync."""

from ledgersync.ledger.base import LedgerGateway
from ledgersync.ledger.factories import create_sqlite_ledger

__all__ = ["LedgerGateway", "create_sqlite_ledger"]
