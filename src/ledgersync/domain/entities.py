"""Domain model entities for ledgersync.

These are pure data classes for scraped source data and ledger records,
independent of both the scraper wire format and the ledger storage schema.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionStatus(str, Enum):
    """Status a source reports for a transaction."""

    COMPLETED = "completed"
    PENDING = "pending"


class AccountType(str, Enum):
    """Ledger account types that can be created for a source account."""

    CHECKING = "checking"
    CREDIT = "credit"
    SAVINGS = "savings"
    INVESTMENT = "investment"
    MORTGAGE = "mortgage"
    DEBT = "debt"
    OTHER = "other"


@dataclass(frozen=True)
class SourceTransaction:
    """Transaction as scraped from an external source."""

    identifier: Optional[str]
    date: date
    charged_amount: Decimal
    description: Optional[str] = None
    category: Optional[str] = None
    memo: Optional[str] = None
    status: TransactionStatus = TransactionStatus.COMPLETED


@dataclass(frozen=True)
class ExternalAccount:
    """One account at a source, with the transactions scraped for it."""

    account_number: str
    transactions: tuple[SourceTransaction, ...] = ()
    balance: Optional[Decimal] = None


@dataclass(frozen=True)
class ScrapeResult:
    """Successful scrape of a source."""

    accounts: tuple[ExternalAccount, ...] = ()


@dataclass(frozen=True)
class LedgerAccountSpec:
    """Attributes of a ledger account about to be created."""

    name: str
    type: AccountType = AccountType.CHECKING
    off_budget: bool = False


@dataclass(frozen=True)
class LedgerAccount:
    """Ledger account domain entity."""

    id: str
    name: str
    type: AccountType
    off_budget: bool
    closed: bool
    created_at: datetime


@dataclass(frozen=True)
class LedgerNote:
    """Free-text note attached to a ledger object (e.g. ``account-<id>``)."""

    id: str
    note: str


@dataclass(frozen=True)
class LedgerTransaction:
    """Transaction ready to be imported into the ledger.

    ``amount`` is in minor units (cents); ``imported_id`` is the key the
    ledger uses to recognize re-imports.
    """

    imported_id: str
    account: str
    date: date
    amount: int
    payee_name: Optional[str] = None
    imported_payee: Optional[str] = None
    category: Optional[str] = None
    notes: Optional[str] = None
    cleared: bool = False


@dataclass(frozen=True)
class ImportResult:
    """Outcome of importing a batch of transactions into one account."""

    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
