"""Shared pytest fixtures for ledgersync tests."""

import tempfile
import os
from datetime import date, datetime, UTC
from decimal import Decimal
import pytest

from ledgersync.config import ImporterConfig, ScraperOptions, SourceConfig
from ledgersync.domain.entities import (
    AccountType,
    ExternalAccount,
    ScrapeResult,
    SourceTransaction,
    TransactionStatus,
)
from ledgersync.domain.errors import ScrapeError
from ledgersync.domain.events import ImportEvents
from ledgersync.domain.retry import RetryExecutor
from ledgersync.ledger.factories import create_sqlite_ledger
from ledgersync.scraping.base import SourceScraper


class FakeScraper(SourceScraper):
    """Scraper returning canned results per company id.

    A company mapped to an exception raises it on every call.
    """

    def __init__(self, results):
        self.results = results
        self.calls = []
        self.executable_paths = []

    def scrape(self, credentials, options, executable_path=None):
        self.calls.append(options)
        self.executable_paths.append(executable_path)
        result = self.results[options.company_id]
        if isinstance(result, Exception):
            raise result
        return result


class RecordingEvents(ImportEvents):
    """Event sink that remembers every notification."""

    def __init__(self):
        self.successes = []
        self.failures = []
        self.finished = 0
        self.cron_started = 0
        self.cron_finished = 0

    def on_import_success(self, result):
        self.successes.append(result)

    def on_import_error(self, result):
        self.failures.append(result)

    def on_import_finish(self):
        self.finished += 1

    def on_cron_start(self):
        self.cron_started += 1

    def on_cron_finish(self):
        self.cron_finished += 1


def make_transaction(identifier, amount, day=1, status=TransactionStatus.COMPLETED, **kwargs):
    """Build a SourceTransaction in January 2024."""
    return SourceTransaction(
        identifier=identifier,
        date=date(2024, 1, day),
        charged_amount=Decimal(str(amount)),
        description=kwargs.pop("description", f"Payee {identifier}"),
        status=status,
        **kwargs,
    )


def make_source(company_id, start_date=None, retry=None, account_type=AccountType.CHECKING):
    """Build a SourceConfig for ``company_id``."""
    return SourceConfig(
        options=ScraperOptions(company_id=company_id, start_date=start_date),
        credentials={"username": "user", "password": "secret"},
        account_type=account_type,
        retry=retry,
    )


@pytest.fixture
def temp_ledger():
    """Create a temporary SQLite ledger, initialized and loaded."""
    fd, db_path = tempfile.mkstemp(suffix=".sqlite")
    os.close(fd)

    ledger = create_sqlite_ledger(database_path=db_path)
    ledger.database_path = db_path
    ledger.init(None, os.path.dirname(db_path), None)
    ledger.download_ledger("test-budget")

    yield ledger

    # Cleanup
    ledger.shutdown()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def sleeps():
    """List collecting the delays a retry executor waited for, in seconds."""
    return []


@pytest.fixture
def retry_executor(sleeps):
    """RetryExecutor that records waits instead of sleeping."""
    return RetryExecutor(sleep=sleeps.append)


@pytest.fixture
def events():
    """Recording event sink."""
    return RecordingEvents()


@pytest.fixture
def checking_account():
    """External account with a reported balance and three transactions."""
    return ExternalAccount(
        account_number="12345",
        balance=Decimal("1000.00"),
        transactions=(
            make_transaction("t1", "-50.25", day=2),
            make_transaction("t2", "-20.00", day=3),
            make_transaction("t3", "300.00", day=4),
        ),
    )


@pytest.fixture
def importer_config(tmp_path):
    """Minimal importer configuration with two sources."""
    return ImporterConfig(
        ledger_sync_id="test-budget",
        ledger_data_dir=str(tmp_path / "data"),
        sources=(make_source("hapoalim"), make_source("max")),
        last_run_path=str(tmp_path / "cache" / "lastCronRunTime"),
    )


@pytest.fixture
def fixed_now():
    """Fixed current time for scheduled runs."""
    return datetime(2024, 6, 15, 12, 0, tzinfo=UTC)


@pytest.fixture
def scrape_results(checking_account):
    """Canned scrape results: one failing source and one succeeding source."""
    return {
        "hapoalim": ScrapeError("INVALID_PASSWORD", "Login failed"),
        "max": ScrapeResult(accounts=(checking_account,)),
    }
