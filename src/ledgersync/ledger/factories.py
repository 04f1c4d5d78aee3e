"""Ledger factory functions for creating gateway instances."""

import os
from pathlib import Path
from typing import Optional

from ledgersync.ledger.sqlalchemy_ledger import SQLAlchemyLedgerGateway


def create_sqlite_ledger(database_path: Optional[str] = None) -> SQLAlchemyLedgerGateway:
    """Create a SQLite-backed ledger gateway.

    Args:
        database_path: Path to SQLite database file. If None, checks the
            LEDGERSYNC_LEDGER_PATH environment variable. When neither is set,
            the database is placed in the data directory given to ``init``
            and named after the sync id.

    Returns:
        SQLAlchemyLedgerGateway instance configured for SQLite
    """
    if database_path is None:
        database_path = os.environ.get("LEDGERSYNC_LEDGER_PATH")

    if database_path is None:
        return SQLAlchemyLedgerGateway()

    Path(database_path).parent.mkdir(parents=True, exist_ok=True)
    return SQLAlchemyLedgerGateway(f"sqlite:///{database_path}")
