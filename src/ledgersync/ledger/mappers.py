"""Mapper functions to convert between domain models and SQLAlchemy models."""

from ledgersync.domain import entities as domain
from ledgersync.ledger.models import (
    Account as ORMAccount,
    Note as ORMNote,
)


def account_to_domain(orm_account: ORMAccount) -> domain.LedgerAccount:
    """Convert SQLAlchemy Account model to domain LedgerAccount entity."""
    return domain.LedgerAccount(
        id=orm_account.id,
        name=orm_account.name,
        type=domain.AccountType(orm_account.type),
        off_budget=orm_account.offbudget,
        closed=orm_account.closed,
        created_at=orm_account.created_at,
    )


def note_to_domain(orm_note: ORMNote) -> domain.LedgerNote:
    """Convert SQLAlchemy Note model to domain LedgerNote entity."""
    return domain.LedgerNote(id=orm_note.id, note=orm_note.note)
