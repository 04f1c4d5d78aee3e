"""Account reconciliation between source accounts and ledger accounts."""

import logging
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Optional

from ledgersync.domain.entities import AccountType, ExternalAccount, LedgerAccountSpec
from ledgersync.ledger.base import LedgerGateway

logger = logging.getLogger(__name__)

ACCOUNT_NOTE_PREFIX = "account-"


def account_marker(external_account_number: str) -> str:
    """Return the note text binding a ledger account to an external account."""
    return f"#externalAccountNumber:{external_account_number} DO NOT DELETE"


def account_name(source_id: str, external_account_number: str) -> str:
    """Return the ledger account name for an external account."""
    return f"{source_id}_{external_account_number}"


class AccountDirectory(ABC):
    """Where the binding between external and ledger accounts is kept."""

    @abstractmethod
    def find(self, external_account_number: str) -> Optional[str]:
        """Return the ledger account id bound to the external account, if any."""
        pass

    @abstractmethod
    def bind(self, account_id: str, external_account_number: str) -> None:
        """Record that ``account_id`` is the ledger account for the external account."""
        pass


class NoteAccountDirectory(AccountDirectory):
    """Keeps bindings as marker notes on ledger accounts.

    The ledger has no structured per-account metadata, so the external
    account number is written into the account's note. The trailing
    ``DO NOT DELETE`` in the marker keeps ``12`` from matching ``123``.
    """

    def __init__(self, ledger: LedgerGateway):
        self.ledger = ledger

    def find(self, external_account_number: str) -> Optional[str]:
        marker = account_marker(external_account_number)
        # The ledger's substring query may be case-insensitive; re-check exactly
        notes = [n for n in self.ledger.query_notes(marker) if marker in n.note]
        if not notes:
            return None
        if len(notes) > 1:
            logger.warning(
                "Several ledger accounts carry the same external account number, using the first",
                extra={"external_account_number": external_account_number, "note_ids": [n.id for n in notes]},
            )
        note_id = notes[0].id
        if note_id.startswith(ACCOUNT_NOTE_PREFIX):
            return note_id[len(ACCOUNT_NOTE_PREFIX):]
        return note_id

    def bind(self, account_id: str, external_account_number: str) -> None:
        self.ledger.attach_note(f"{ACCOUNT_NOTE_PREFIX}{account_id}", account_marker(external_account_number))


class AccountReconciler:
    """Resolve external accounts to ledger accounts, creating them when missing."""

    def __init__(self, ledger: LedgerGateway, directory: Optional[AccountDirectory] = None):
        """Initialize account reconciler.

        Args:
            ledger: Ledger gateway used to create accounts
            directory: Binding store; defaults to marker notes in the ledger
        """
        self.ledger = ledger
        self.directory = directory or NoteAccountDirectory(ledger)

    def opening_balance(self, external_account: ExternalAccount) -> int:
        """Return the opening balance, in minor units, for a new ledger account.

        The reported balance already includes the scraped transactions, which
        are imported right after the account is created; subtracting them
        makes the final ledger balance equal the reported one. Without a
        reported balance the account opens at zero.
        """
        if external_account.balance is None:
            return 0
        transactions_total = sum(
            (t.charged_amount for t in external_account.transactions), Decimal("0")
        )
        return self.ledger.amount_to_minor_units(external_account.balance - transactions_total)

    def resolve_or_create(
        self,
        source_id: str,
        external_account: ExternalAccount,
        account_type: AccountType = AccountType.CHECKING,
    ) -> str:
        """Return the ledger account id for an external account.

        Args:
            source_id: Company/source the account belongs to
            external_account: Scraped account
            account_type: Type used if a ledger account must be created

        Returns:
            Ledger account ID
        """
        number = external_account.account_number
        account_id = self.directory.find(number)
        if account_id is not None:
            logger.info(
                "Found account in ledger",
                extra={"external_account_number": number, "account_id": account_id},
            )
            return account_id

        name = account_name(source_id, number)
        logger.warning("Couldn't find account in ledger, creating a new one", extra={"account_name": name})

        # Not atomic: a failure before bind leaves an unmarked account behind
        account_id = self.ledger.create_account(
            LedgerAccountSpec(name=name, type=account_type),
            self.opening_balance(external_account),
        )
        self.directory.bind(account_id, number)
        logger.info("Account created in ledger", extra={"account_name": name, "account_id": account_id})
        return account_id
