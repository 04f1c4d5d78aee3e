"""SQLAlchemy ledger gateway over a local budget database."""

import logging
from pathlib import Path
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from ledgersync.domain.entities import (
    ImportResult,
    LedgerAccount,
    LedgerAccountSpec,
    LedgerNote,
    LedgerTransaction,
)
from ledgersync.domain.errors import (
    NotFoundError,
    NotInitializedError,
    account_not_found,
)
from ledgersync.ledger.base import LedgerGateway
from ledgersync.ledger.mappers import account_to_domain, note_to_domain
from ledgersync.ledger.models import (
    Account,
    Note,
    Transaction,
    create_session_factory,
)

logger = logging.getLogger(__name__)

STARTING_BALANCE_PAYEE = "Starting Balance"

# Fields copied from an incoming transaction onto an existing one on re-import
_UPDATABLE_FIELDS = ("date", "amount", "payee_name", "imported_payee", "category", "notes", "cleared")


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SQLAlchemyLedgerGateway(LedgerGateway):
    """LedgerGateway backed by a SQLAlchemy database.

    Each synced ledger lives in its own database. When no explicit URL is
    given, ``download_ledger(sync_id)`` opens ``<data_dir>/<sync_id>.sqlite``.
    """

    def __init__(self, database_url: Optional[str] = None):
        """Initialize the gateway.

        Args:
            database_url: SQLAlchemy database URL (e.g., 'sqlite:///path/to.db').
                If None, the URL is derived from the data directory passed
                to ``init`` and the sync id passed to ``download_ledger``.
        """
        self.database_url = database_url
        self.data_dir: Optional[Path] = None
        self.server_url: Optional[str] = None
        self.session_factory: Optional[sessionmaker[Session]] = None
        self._session: Optional[Session] = None

    def _get_session(self) -> Session:
        """Get current session, creating one if needed."""
        if self.session_factory is None:
            raise NotInitializedError("Ledger not loaded; call download_ledger first")
        if self._session is None:
            self._session = self.session_factory()
        return self._session

    def init(self, server_url: Optional[str], data_dir: str, password: Optional[str]) -> None:
        """Prepare the data directory. The local database needs no login."""
        self.server_url = server_url
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        logger.debug("Ledger gateway initialized", extra={"data_dir": str(self.data_dir)})

    def download_ledger(self, sync_id: str) -> None:
        """Open the ledger database for ``sync_id``."""
        database_url = self.database_url
        if database_url is None:
            if self.data_dir is None:
                raise NotInitializedError("Ledger gateway not initialized")
            database_url = f"sqlite:///{self.data_dir / f'{sync_id}.sqlite'}"
        self._close()
        self.session_factory = create_session_factory(database_url)
        logger.info("Ledger loaded", extra={"sync_id": sync_id})

    # Account operations
    def list_accounts(self) -> list[LedgerAccount]:
        """List all accounts."""
        session = self._get_session()
        accounts = session.query(Account).order_by(Account.name).all()
        return [account_to_domain(acc) for acc in accounts]

    def create_account(self, spec: LedgerAccountSpec, opening_balance: int = 0) -> str:
        """Create an account, recording a non-zero opening balance as a transaction."""
        session = self._get_session()
        account = Account(name=spec.name, type=spec.type.value, offbudget=spec.off_budget)
        session.add(account)
        session.flush()

        if opening_balance:
            session.add(
                Transaction(
                    account_id=account.id,
                    date=account.created_at.date(),
                    amount=opening_balance,
                    payee_name=STARTING_BALANCE_PAYEE,
                    cleared=True,
                    starting_balance=True,
                )
            )
        session.commit()
        return account.id

    def delete_account(self, account_id: str) -> None:
        """Delete an account, its transactions and its note."""
        session = self._get_session()
        account = session.query(Account).filter(Account.id == account_id).first()
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        note = session.query(Note).filter(Note.id == f"account-{account_id}").first()
        if note is not None:
            session.delete(note)
        session.delete(account)
        session.commit()

    def get_balance(self, account_id: str) -> int:
        """Return the running balance of an account in minor units."""
        session = self._get_session()
        amounts = session.query(Transaction.amount).filter(Transaction.account_id == account_id).all()
        return sum(amount for (amount,) in amounts)

    # Note operations
    def query_notes(self, contains: str) -> list[LedgerNote]:
        """Return notes whose text contains ``contains``."""
        session = self._get_session()
        pattern = f"%{_escape_like(contains)}%"
        notes = session.query(Note).filter(Note.note.like(pattern, escape="\\")).order_by(Note.id).all()
        return [note_to_domain(note) for note in notes]

    def attach_note(self, target_id: str, text: str) -> None:
        """Save ``text`` as the note of ``target_id``, replacing any previous note."""
        session = self._get_session()
        note = session.query(Note).filter(Note.id == target_id).first()
        if note is None:
            session.add(Note(id=target_id, note=text))
        else:
            note.note = text
        session.commit()

    # Transaction operations
    def import_transactions(
        self, account_id: str, transactions: list[LedgerTransaction]
    ) -> ImportResult:
        """Import transactions, updating rows whose ``imported_id`` is already known."""
        session = self._get_session()
        account = session.query(Account).filter(Account.id == account_id).first()
        if account is None:
            raise NotFoundError(account_not_found(account_id))

        added: list[str] = []
        updated: list[str] = []
        errors: list[str] = []

        for txn in transactions:
            if not txn.imported_id:
                errors.append("Transaction without imported_id")
                continue
            if txn.account != account_id:
                errors.append(
                    f"Transaction '{txn.imported_id}' belongs to account {txn.account}, not {account_id}"
                )
                continue

            existing = (
                session.query(Transaction)
                .filter(Transaction.account_id == account_id, Transaction.imported_id == txn.imported_id)
                .first()
            )
            if existing is None:
                row = Transaction(
                    account_id=account_id,
                    imported_id=txn.imported_id,
                    date=txn.date,
                    amount=txn.amount,
                    payee_name=txn.payee_name,
                    imported_payee=txn.imported_payee,
                    category=txn.category,
                    notes=txn.notes,
                    cleared=txn.cleared,
                )
                session.add(row)
                session.flush()
                added.append(row.id)
                continue

            changed = False
            for name in _UPDATABLE_FIELDS:
                value = getattr(txn, name)
                if getattr(existing, name) != value:
                    setattr(existing, name, value)
                    changed = True
            if changed:
                updated.append(existing.id)

        session.commit()
        return ImportResult(added=added, updated=updated, errors=errors)

    def shutdown(self) -> None:
        """Close the session and release the engine."""
        self._close()

    def _close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None
        if self.session_factory is not None:
            engine = self.session_factory.kw.get("bind")
            if engine is not None:
                engine.dispose()
            self.session_factory = None
