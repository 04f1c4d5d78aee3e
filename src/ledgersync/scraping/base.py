"""Source scraper interface and scrape result parsing."""

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional

from ledgersync.config import ScraperOptions
from ledgersync.domain.entities import (
    ExternalAccount,
    ScrapeResult,
    SourceTransaction,
    TransactionStatus,
)
from ledgersync.domain.errors import NotFoundError, ScrapeError, ValidationError
from ledgersync.utils.amount_parser import parse_amount
from ledgersync.utils.date_parser import parse_date


class SourceScraper(ABC):
    """Contract over one kind of external data source."""

    @abstractmethod
    def scrape(
        self,
        credentials: Mapping[str, Any],
        options: ScraperOptions,
        executable_path: Optional[str] = None,
    ) -> ScrapeResult:
        """Scrape accounts and transactions since ``options.start_date``.

        Raises:
            ScrapeError: If the source reports an unsuccessful scrape
        """
        pass


class ScraperRegistry(SourceScraper):
    """Dispatch scrapes to the scraper registered for each company id."""

    def __init__(self, scrapers: Optional[dict[str, SourceScraper]] = None):
        self._scrapers: dict[str, SourceScraper] = dict(scrapers or {})

    def register(self, company_id: str, scraper: SourceScraper) -> None:
        self._scrapers[company_id] = scraper

    def scrape(
        self,
        credentials: Mapping[str, Any],
        options: ScraperOptions,
        executable_path: Optional[str] = None,
    ) -> ScrapeResult:
        scraper = self._scrapers.get(options.company_id)
        if scraper is None:
            raise NotFoundError(f"No scraper registered for company '{options.company_id}'")
        return scraper.scrape(credentials, options, executable_path)


def _parse_status(value: Optional[str]) -> TransactionStatus:
    if value is None:
        return TransactionStatus.COMPLETED
    try:
        return TransactionStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown transaction status '{value}'")


def parse_transaction(data: Mapping[str, Any]) -> SourceTransaction:
    """Convert one scraped transaction record to a SourceTransaction.

    Raises:
        ValidationError: If the date, amount or status cannot be parsed
    """
    identifier = data.get("identifier")
    try:
        txn_date = parse_date(data["date"])
        charged_amount = parse_amount(data["chargedAmount"])
    except KeyError as e:
        raise ValidationError(f"Transaction {identifier!r} is missing {e.args[0]}")
    except ValueError as e:
        raise ValidationError(f"Transaction {identifier!r}: {e}")

    return SourceTransaction(
        identifier=str(identifier) if identifier not in (None, "") else None,
        date=txn_date,
        charged_amount=charged_amount,
        description=data.get("description"),
        category=data.get("category"),
        memo=data.get("memo"),
        status=_parse_status(data.get("status")),
    )


def parse_scrape_result(raw: Mapping[str, Any]) -> ScrapeResult:
    """Convert a scraper's result record into a ScrapeResult.

    Successful results look like
    ``{"success": true, "accounts": [{"accountNumber", "balance", "txns"}]}``;
    failed ones carry ``errorType`` and ``errorMessage`` instead.

    Raises:
        ScrapeError: If the record reports failure
        ValidationError: If a record inside the result is malformed
    """
    if not raw.get("success"):
        raise ScrapeError(raw.get("errorType") or "GENERIC", raw.get("errorMessage"))

    accounts = []
    for account in raw.get("accounts") or []:
        number = account.get("accountNumber")
        if number in (None, ""):
            raise ValidationError("Scraped account without accountNumber")
        balance = account.get("balance")
        try:
            balance = parse_amount(balance) if balance is not None else None
        except ValueError as e:
            raise ValidationError(f"Account {number}: {e}")
        accounts.append(
            ExternalAccount(
                account_number=str(number),
                transactions=tuple(parse_transaction(t) for t in account.get("txns") or []),
                balance=balance,
            )
        )
    return ScrapeResult(accounts=tuple(accounts))
