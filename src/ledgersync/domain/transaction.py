"""Translation of scraped transactions into ledger transactions."""

import logging
from decimal import Decimal
from typing import Callable, Iterable

from ledgersync.domain.entities import LedgerTransaction, SourceTransaction, TransactionStatus
from ledgersync.utils.amount_parser import amount_to_minor_units

logger = logging.getLogger(__name__)


class TransactionMapper:
    """Map source transactions to ledger transactions.

    Mapping has no side effects besides logging: the same input always
    yields the same output.
    """

    def __init__(self, to_minor_units: Callable[[Decimal], int] = amount_to_minor_units):
        """Initialize transaction mapper.

        Args:
            to_minor_units: Conversion from major-unit amounts, usually the
                ledger gateway's ``amount_to_minor_units``
        """
        self.to_minor_units = to_minor_units

    def map_transaction(self, account_id: str, txn: SourceTransaction) -> LedgerTransaction:
        """Map a single transaction that has an identifier."""
        return LedgerTransaction(
            imported_id=str(txn.identifier),
            account=account_id,
            date=txn.date,
            amount=self.to_minor_units(txn.charged_amount),
            payee_name=txn.description,
            imported_payee=txn.description,
            category=txn.category,
            notes=txn.memo,
            cleared=txn.status == TransactionStatus.COMPLETED,
        )

    def map(self, account_id: str, transactions: Iterable[SourceTransaction]) -> list[LedgerTransaction]:
        """Map transactions in order, dropping those without an identifier.

        Args:
            account_id: Ledger account the transactions belong to
            transactions: Scraped transactions

        Returns:
            Ledger transactions, one per kept source transaction
        """
        mapped = []
        for txn in transactions:
            if not txn.identifier:
                logger.debug(
                    "Skipping transaction without identifier",
                    extra={"account_id": account_id, "date": str(txn.date), "description": txn.description},
                )
                continue
            mapped.append(self.map_transaction(account_id, txn))
        return mapped
