"""Importer configuration."""

import json
import os
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from ledgersync.domain.entities import AccountType
from ledgersync.domain.errors import ConfigError
from ledgersync.domain.retry import NO_RETRY, RetryPolicy, RetrySetting
from ledgersync.utils.date_parser import parse_datetime

DEFAULT_LAST_RUN_PATH = "./cache/lastCronRunTime"


@dataclass(frozen=True)
class ScraperOptions:
    """Options handed to the scraper for one source.

    ``extra`` carries scraper-specific settings the importer does not read.
    """

    company_id: str
    start_date: Optional[datetime] = None
    extra: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class SourceConfig:
    """One configured external data source."""

    options: ScraperOptions
    credentials: dict[str, Any] = field(default_factory=dict)
    account_type: AccountType = AccountType.CHECKING
    retry: RetrySetting = None

    @property
    def source_id(self) -> str:
        return self.options.company_id

    @property
    def start_date(self) -> Optional[datetime]:
        return self.options.start_date

    def with_start_date(self, start_date: Optional[datetime]) -> "SourceConfig":
        """Return a copy of this source scraping from ``start_date``."""
        return replace(self, options=replace(self.options, start_date=start_date))


@dataclass(frozen=True)
class ImporterConfig:
    """Everything the importer needs for a run."""

    ledger_sync_id: str
    ledger_data_dir: str
    ledger_url: Optional[str] = None
    ledger_password: Optional[str] = None
    sources: tuple[SourceConfig, ...] = ()
    retry: Optional[RetryPolicy] = None
    cleanup: bool = False
    download_chromium: bool = False
    chromium_install_path: Optional[str] = None
    show_logs: bool = True  # handed to setup_logging by the host process
    last_run_path: str = DEFAULT_LAST_RUN_PATH
    advance_marker_on_partial_failure: bool = False

    def with_sources(self, sources: list[SourceConfig]) -> "ImporterConfig":
        """Return a copy of this config with ``sources`` replaced."""
        return replace(self, sources=tuple(sources))


def parse_retry(value: Any) -> RetrySetting:
    """Parse a retry setting.

    ``false`` disables retries, an object is a policy, ``null`` or a
    missing key falls back to the default policy.

    Raises:
        ConfigError: If the value is neither
    """
    if value is None:
        return None
    if value is False:
        return NO_RETRY
    if isinstance(value, dict):
        try:
            return RetryPolicy(
                max_attempts=int(value.get("maxAttempts", 1)),
                initial_delay_ms=int(value.get("initialDelay", 1000)),
                max_delay_ms=int(value.get("maxDelay", 10000)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid retry policy {value!r}: {e}")
    raise ConfigError(f"Invalid retry setting {value!r}")


def source_from_dict(data: dict[str, Any]) -> SourceConfig:
    """Build a SourceConfig from its JSON representation."""
    options = dict(data.get("options") or {})
    company_id = options.pop("companyId", None)
    if not company_id:
        raise ConfigError("Source options must include 'companyId'")

    try:
        start_date = parse_datetime(options.pop("startDate", None))
    except ValueError as e:
        raise ConfigError(f"Invalid startDate for source '{company_id}': {e}")

    account_type = data.get("actualAccountType") or data.get("accountType") or AccountType.CHECKING.value
    try:
        account_type = AccountType(account_type)
    except ValueError:
        raise ConfigError(f"Unknown account type '{account_type}' for source '{company_id}'")

    return SourceConfig(
        options=ScraperOptions(company_id=company_id, start_date=start_date, extra=options),
        credentials=dict(data.get("credentials") or {}),
        account_type=account_type,
        retry=parse_retry(data.get("retry")),
    )


def config_from_dict(data: dict[str, Any]) -> ImporterConfig:
    """Build an ImporterConfig from its JSON representation.

    Raises:
        ConfigError: If required keys are missing or values are invalid
    """
    for key in ("ledgerSyncId", "ledgerDataDir"):
        if not data.get(key):
            raise ConfigError(f"Missing required configuration key '{key}'")

    global_retry = parse_retry(data.get("retry"))
    if global_retry is NO_RETRY:
        raise ConfigError("The global retry setting must be a policy, not false")

    return ImporterConfig(
        ledger_sync_id=data["ledgerSyncId"],
        ledger_data_dir=data["ledgerDataDir"],
        ledger_url=data.get("ledgerUrl"),
        ledger_password=os.environ.get("LEDGERSYNC_LEDGER_PASSWORD", data.get("ledgerPassword")),
        sources=tuple(source_from_dict(s) for s in data.get("sources") or []),
        retry=global_retry,
        cleanup=bool(data.get("cleanup", False)),
        download_chromium=bool(data.get("shouldDownloadChromium", False)),
        chromium_install_path=data.get("chromiumInstallPath"),
        show_logs=bool(data.get("showLogs", True)),
        last_run_path=data.get("lastRunPath", DEFAULT_LAST_RUN_PATH),
        advance_marker_on_partial_failure=bool(data.get("advanceMarkerOnPartialFailure", False)),
    )


def load_config(config_path: Optional[str] = None) -> ImporterConfig:
    """Load importer configuration from a JSON file.

    Args:
        config_path: Path to the JSON file. If None, the LEDGERSYNC_CONFIG
            environment variable is used.

    Raises:
        ConfigError: If no path is available, the file is missing or invalid
    """
    if config_path is None:
        config_path = os.environ.get("LEDGERSYNC_CONFIG")
    if config_path is None:
        raise ConfigError("No configuration file given and LEDGERSYNC_CONFIG is not set")

    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Configuration file {config_path} is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a JSON object")
    return config_from_dict(data)
