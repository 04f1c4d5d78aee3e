"""Source scraper contract for ledgersync."""

from ledgersync.scraping.base import (
    ScraperRegistry,
    SourceScraper,
    parse_scrape_result,
)

__all__ = ["ScraperRegistry", "SourceScraper", "parse_scrape_result"]
