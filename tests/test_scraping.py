"""Tests for scraper results and the scraper registry."""

from datetime import date
from decimal import Decimal
import pytest

from ledgersync.config import ScraperOptions
from ledgersync.domain.entities import ScrapeResult, TransactionStatus
from ledgersync.domain.errors import NotFoundError, ScrapeError, ValidationError
from ledgersync.scraping.base import ScraperRegistry, parse_scrape_result
from conftest import FakeScraper


RAW_RESULT = {
    "success": True,
    "accounts": [
        {
            "accountNumber": "1234",
            "balance": 1520.5,
            "txns": [
                {
                    "identifier": 998877,
                    "date": "2024-01-09T22:00:00.000Z",
                    "description": "Supermarket",
                    "chargedAmount": -120.4,
                    "memo": "weekly",
                    "status": "completed",
                },
                {
                    "date": "2024-01-10T00:00:00.000Z",
                    "description": "No id",
                    "chargedAmount": -5,
                    "status": "pending",
                },
            ],
        },
        {"accountNumber": 5678, "txns": []},
    ],
}


class TestParseScrapeResult:
    """Tests for parse_scrape_result."""

    def test_successful_result(self):
        """Test accounts and transactions are converted."""
        result = parse_scrape_result(RAW_RESULT)

        first, second = result.accounts
        assert first.account_number == "1234"
        assert first.balance == Decimal("1520.5")
        supermarket, no_id = first.transactions
        assert supermarket.identifier == "998877"
        assert supermarket.date == date(2024, 1, 9)
        assert supermarket.charged_amount == Decimal("-120.4")
        assert supermarket.memo == "weekly"
        assert no_id.identifier is None
        assert no_id.status == TransactionStatus.PENDING
        assert second.account_number == "5678"
        assert second.balance is None
        assert second.transactions == ()

    def test_failed_result_raises_scrape_error(self):
        """Test failures carry the error type and message."""
        with pytest.raises(ScrapeError) as excinfo:
            parse_scrape_result({"success": False, "errorType": "INVALID_PASSWORD", "errorMessage": "bad"})

        assert excinfo.value.error_type == "INVALID_PASSWORD"
        assert str(excinfo.value) == "INVALID_PASSWORD: bad"

    def test_bad_date_raises(self):
        """Test malformed transactions are rejected."""
        raw = {
            "success": True,
            "accounts": [{"accountNumber": "1", "txns": [{"identifier": "x", "date": "not a date", "chargedAmount": 1}]}],
        }
        with pytest.raises(ValidationError):
            parse_scrape_result(raw)

    def test_unknown_status_raises(self):
        """Test unknown statuses are rejected."""
        raw = {
            "success": True,
            "accounts": [{"accountNumber": "1", "txns": [
                {"identifier": "x", "date": "2024-01-01", "chargedAmount": 1, "status": "weird"}
            ]}],
        }
        with pytest.raises(ValidationError):
            parse_scrape_result(raw)


class TestScraperRegistry:
    """Tests for ScraperRegistry."""

    def test_dispatches_by_company(self):
        """Test the scraper registered for the company is used."""
        max_scraper = FakeScraper({"max": ScrapeResult()})
        registry = ScraperRegistry({"max": max_scraper})

        registry.scrape({}, ScraperOptions(company_id="max"))

        assert len(max_scraper.calls) == 1

    def test_unregistered_company(self):
        """Test an unknown company raises."""
        registry = ScraperRegistry()
        registry.register("max", FakeScraper({}))
        with pytest.raises(NotFoundError):
            registry.scrape({}, ScraperOptions(company_id="leumi"))
