"""Abstract ledger gateway interface."""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional, Union

# Import entities directly so the ledger layer never pulls in domain services
from ledgersync.domain.entities import (
    ImportResult,
    LedgerAccount,
    LedgerAccountSpec,
    LedgerNote,
    LedgerTransaction,
)
from ledgersync.utils.amount_parser import amount_to_minor_units


class LedgerGateway(ABC):
    """Contract over the budgeting ledger the importer writes to.

    Every method may fail as a remote call would; callers wrap them in
    retries where a failure is recoverable.
    """

    @abstractmethod
    def init(self, server_url: Optional[str], data_dir: str, password: Optional[str]) -> None:
        """Connect to the ledger service."""
        pass

    @abstractmethod
    def download_ledger(self, sync_id: str) -> None:
        """Load the ledger identified by ``sync_id`` for reading and writing."""
        pass

    # Account operations
    @abstractmethod
    def list_accounts(self) -> list[LedgerAccount]:
        """List all accounts."""
        pass

    @abstractmethod
    def create_account(self, spec: LedgerAccountSpec, opening_balance: int = 0) -> str:
        """Create an account with an opening balance in minor units. Returns account ID."""
        pass

    @abstractmethod
    def delete_account(self, account_id: str) -> None:
        """Delete an account and its transactions."""
        pass

    # Note operations
    @abstractmethod
    def query_notes(self, contains: str) -> list[LedgerNote]:
        """Return notes whose text contains ``contains``."""
        pass

    @abstractmethod
    def attach_note(self, target_id: str, text: str) -> None:
        """Save ``text`` as the note of ``target_id`` (e.g. ``account-<id>``)."""
        pass

    # Transaction operations
    @abstractmethod
    def import_transactions(
        self, account_id: str, transactions: list[LedgerTransaction]
    ) -> ImportResult:
        """Import transactions, treating a known ``imported_id`` as an update.

        Per-transaction problems are reported in ``ImportResult.errors``
        rather than raised.
        """
        pass

    def amount_to_minor_units(self, amount: Union[Decimal, float, int, str]) -> int:
        """Convert a major-unit amount to the ledger's integer representation."""
        return amount_to_minor_units(amount)

    @abstractmethod
    def shutdown(self) -> None:
        """Flush pending changes and close the connection."""
        pass
