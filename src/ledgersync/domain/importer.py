"""Import orchestration: scrape sources and import them into the ledger."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import Callable, Iterable, Optional

import click

from ledgersync.config import ImporterConfig, SourceConfig
from ledgersync.domain.account import AccountReconciler, account_name
from ledgersync.domain.entities import ExternalAccount
from ledgersync.domain.errors import (
    CleanupAbortedError,
    NotInitializedError,
    StateTransitionError,
    error_causes,
    transition_not_allowed,
)
from ledgersync.domain.events import ImportEvents, ImportFailure, ImportSuccess
from ledgersync.domain.retry import RetryExecutor
from ledgersync.domain.sync_window import CronPreset, LastRunStore, SyncWindowPlanner
from ledgersync.domain.transaction import TransactionMapper
from ledgersync.ledger.base import LedgerGateway
from ledgersync.scraping.base import SourceScraper

logger = logging.getLogger(__name__)

CLEANUP_PROMPT = "Are you sure you want to delete all accounts?"


class OrchestratorState(str, Enum):
    """Lifecycle of an importer instance."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    RUNNING = "running"
    FINISHED = "finished"
    SHUTTING_DOWN = "shutting_down"
    SHUT_DOWN = "shut_down"


_TRANSITIONS = {
    OrchestratorState.UNINITIALIZED: {OrchestratorState.INITIALIZING},
    OrchestratorState.INITIALIZING: {OrchestratorState.READY, OrchestratorState.UNINITIALIZED},
    OrchestratorState.READY: {OrchestratorState.RUNNING, OrchestratorState.SHUTTING_DOWN},
    OrchestratorState.RUNNING: {OrchestratorState.FINISHED},
    OrchestratorState.FINISHED: {OrchestratorState.RUNNING, OrchestratorState.SHUTTING_DOWN},
    OrchestratorState.SHUTTING_DOWN: {OrchestratorState.SHUT_DOWN},
    OrchestratorState.SHUT_DOWN: {OrchestratorState.INITIALIZING},
}

# States in which the ledger connection is usable
_CONNECTED_STATES = {OrchestratorState.READY, OrchestratorState.RUNNING, OrchestratorState.FINISHED}


@dataclass
class SourceOutcome:
    """What happened to one source during a run."""

    company_id: str
    start_date: Optional[datetime]
    succeeded: bool = True
    imported_accounts: list[str] = field(default_factory=list)
    errors: list[BaseException] = field(default_factory=list)
    import_errors: list[str] = field(default_factory=list)


@dataclass
class RunReport:
    """Outcome of a whole run."""

    sources: list[SourceOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return all(outcome.succeeded for outcome in self.sources)


@dataclass(frozen=True)
class CleanupResult:
    deleted: int
    errors: list[BaseException]


def confirm_cleanup(prompt: str) -> bool:
    """Ask the operator on the terminal; anything but yes declines."""
    try:
        return click.confirm(prompt, default=False)
    except click.Abort:
        return False


class ImportOrchestrator:
    """Drive scrape, account reconciliation and import for every source.

    Sources are processed one after another. A failure inside one source is
    reported and the run moves on to the next source; only initialization
    failures escape ``run``.
    """

    def __init__(
        self,
        config: ImporterConfig,
        ledger: LedgerGateway,
        scraper: SourceScraper,
        events: Optional[ImportEvents] = None,
        retry_executor: Optional[RetryExecutor] = None,
        reconciler: Optional[AccountReconciler] = None,
        mapper: Optional[TransactionMapper] = None,
        planner: Optional[SyncWindowPlanner] = None,
        last_run_store: Optional[LastRunStore] = None,
        confirm: Callable[[str], bool] = confirm_cleanup,
        chromium_provider: Optional[Callable[[Optional[str]], str]] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(UTC),
    ):
        """Initialize the importer.

        Args:
            config: Importer configuration
            ledger: Ledger gateway the transactions are imported into
            scraper: Scraper for the configured sources
            events: Receiver of success, error, finish and cron notifications
            retry_executor: Retry runner; defaults to the config's retry policy
            reconciler: Account reconciler; defaults to marker notes in the ledger
            mapper: Transaction mapper; defaults to the ledger's amount conversion
            planner: Sync window planner for scheduled runs
            last_run_store: Storage of the last scheduled run time
            confirm: Asks the operator before destructive cleanup
            chromium_provider: Downloads a browser for the scrapers, given an
                install path, and returns the executable path
            clock: Source of the current time
        """
        self.config = config
        self.ledger = ledger
        self.scraper = scraper
        self.events = events or ImportEvents()
        self.retry = retry_executor or RetryExecutor(default_policy=config.retry)
        self.reconciler = reconciler or AccountReconciler(ledger)
        self.mapper = mapper or TransactionMapper(ledger.amount_to_minor_units)
        self.planner = planner or SyncWindowPlanner()
        self.last_run_store = last_run_store or LastRunStore(config.last_run_path)
        self.confirm = confirm
        self.chromium_provider = chromium_provider
        self.clock = clock
        self.chromium_path: Optional[str] = None
        self._state = OrchestratorState.UNINITIALIZED

    @property
    def state(self) -> OrchestratorState:
        return self._state

    def _transition(self, target: OrchestratorState) -> None:
        if target not in _TRANSITIONS[self._state]:
            raise StateTransitionError(transition_not_allowed(self._state.value, target.value))
        logger.debug("Importer state change", extra={"from": self._state.value, "to": target.value})
        self._state = target

    def init(self) -> None:
        """Connect to the ledger and load it. Does nothing when already connected."""
        if self._state in _CONNECTED_STATES:
            return

        logger.info("Initializing ledger gateway")
        self._transition(OrchestratorState.INITIALIZING)
        try:
            self.ledger.init(self.config.ledger_url, self.config.ledger_data_dir, self.config.ledger_password)
            self.ledger.download_ledger(self.config.ledger_sync_id)
            self._provide_chromium()
        except Exception:
            self._transition(OrchestratorState.UNINITIALIZED)
            raise
        self._transition(OrchestratorState.READY)

    def _provide_chromium(self) -> None:
        if not self.config.download_chromium:
            return
        if self.chromium_provider is None:
            logger.warning("Chromium download requested but no provider configured")
            return
        logger.info("Downloading chromium", extra={"install_path": self.config.chromium_install_path})
        self.chromium_path = self.chromium_provider(self.config.chromium_install_path)

    def cleanup(self) -> CleanupResult:
        """Delete every ledger account after the operator confirms.

        Each deletion is attempted even when others fail.

        Raises:
            NotInitializedError: If the ledger is not connected
            CleanupAbortedError: If the operator did not confirm
        """
        if self._state not in _CONNECTED_STATES:
            raise NotInitializedError("Ledger gateway not initialized")

        if not self.confirm(CLEANUP_PROMPT):
            logger.info("Operation cancelled by user.")
            raise CleanupAbortedError("Cleanup cancelled by user")

        deleted = 0
        errors: list[BaseException] = []
        for account in self.ledger.list_accounts():
            try:
                self.ledger.delete_account(account.id)
                deleted += 1
            except Exception as e:
                logger.warning("Could not delete account", extra={"account_id": account.id, "error": str(e)})
                errors.append(e)

        logger.info("Cleanup finished", extra={"deleted_accounts": deleted, "errors": len(errors)})
        return CleanupResult(deleted=deleted, errors=errors)

    def run(self, shutdown: bool = True, sources: Optional[Iterable[SourceConfig]] = None) -> RunReport:
        """Import every source into the ledger.

        Args:
            shutdown: Release the ledger connection when done; keep it open
                for repeated runs in a long-lived process otherwise
            sources: Sources to process instead of the configured ones

        Returns:
            RunReport with one outcome per source
        """
        self.init()
        self._transition(OrchestratorState.RUNNING)

        report = RunReport()
        try:
            if self.config.cleanup:
                self._cleanup_before_run()
            for source in (self.config.sources if sources is None else sources):
                report.sources.append(self._process_source(source))
        finally:
            self._transition(OrchestratorState.FINISHED)

        logger.info("Finished importing transactions", extra={"succeeded": report.succeeded})
        self._notify(self.events.on_import_finish)

        if shutdown:
            self.shutdown()
        return report

    def run_scheduled(self, preset: CronPreset) -> RunReport:
        """Perform one scheduled run.

        Start dates come from the last completed scheduled run; the marker is
        advanced afterwards when every source succeeded, or regardless when
        ``advance_marker_on_partial_failure`` is set.
        """
        self._notify(self.events.on_cron_start)
        sources = self.planner.plan_sources(
            self.config.sources, self.last_run_store.read(), preset, self.clock()
        )
        report = self.run(shutdown=False, sources=sources)

        if report.succeeded or self.config.advance_marker_on_partial_failure:
            self.last_run_store.write(self.clock())
        else:
            logger.warning("Run had failures, last run time not advanced")

        self._notify(self.events.on_cron_finish)
        return report

    def shutdown(self) -> None:
        """Close the ledger connection if it is open."""
        if self._state not in (OrchestratorState.READY, OrchestratorState.FINISHED):
            return
        logger.info("Shutting down ledger gateway")
        self._transition(OrchestratorState.SHUTTING_DOWN)
        try:
            self.ledger.shutdown()
        finally:
            self._transition(OrchestratorState.SHUT_DOWN)

    def _cleanup_before_run(self) -> None:
        try:
            self.cleanup()
        except CleanupAbortedError:
            logger.info("Skipping cleanup")
        except Exception:
            logger.exception("Cleanup failed, importing without it")

    def _notify(self, hook: Callable[..., None], *args) -> None:
        """Call an event hook; a failing hook is logged and never ends the run."""
        try:
            hook(*args)
        except Exception:
            logger.exception("Event hook failed", extra={"hook": getattr(hook, "__name__", repr(hook))})

    def _process_source(self, source: SourceConfig) -> SourceOutcome:
        outcome = SourceOutcome(company_id=source.source_id, start_date=source.start_date)
        try:
            logger.info(
                "Scraping transactions",
                extra={"company_id": source.source_id, "start_date": source.start_date},
            )
            result = self.retry.execute(
                lambda: self.scraper.scrape(source.credentials, source.options, self.chromium_path),
                f"Scrape {source.source_id}",
                source.retry,
            )

            for external_account in result.accounts:
                if not external_account.transactions:
                    logger.warning(
                        "No transactions found for account",
                        extra={"company_id": source.source_id, "account": external_account.account_number},
                    )
                    continue
                self._import_account(source, external_account, outcome)
        except Exception as e:
            outcome.succeeded = False
            outcome.errors = error_causes(e)
            logger.error(
                "Importing source failed",
                exc_info=True,
                extra={"company_id": source.source_id, "causes": [str(c) for c in outcome.errors]},
            )
            self._notify(
                self.events.on_import_error,
                ImportFailure(
                    company_id=source.source_id,
                    start_date=source.start_date,
                    error=e,
                    errors=list(outcome.errors),
                ),
            )
        return outcome

    def _import_account(
        self, source: SourceConfig, external_account: ExternalAccount, outcome: SourceOutcome
    ) -> None:
        name = account_name(source.source_id, external_account.account_number)
        account_id = self.retry.execute(
            lambda: self.reconciler.resolve_or_create(source.source_id, external_account, source.account_type),
            f"Resolve account {name}",
            source.retry,
        )

        transactions = self.mapper.map(account_id, external_account.transactions)
        logger.info(
            "Importing transactions",
            extra={"account_name": name, "account_id": account_id, "count": len(transactions)},
        )
        result = self.retry.execute(
            lambda: self.ledger.import_transactions(account_id, transactions),
            f"Import transactions into {name}",
            source.retry,
        )

        if result.errors:
            logger.error(
                "Got errors from ledger while importing transactions",
                extra={"account_name": name, "account_id": account_id, "errors": result.errors},
            )
            outcome.succeeded = False
            outcome.import_errors.extend(result.errors)
            return

        logger.info(
            "Transactions imported to ledger",
            extra={
                "account_name": name,
                "account_id": account_id,
                "added": len(result.added),
                "updated": len(result.updated),
            },
        )
        outcome.imported_accounts.append(account_id)
        self._notify(
            self.events.on_import_success,
            ImportSuccess(
                account_id=account_id,
                account_name=name,
                added=result.added,
                updated=result.updated,
                errors=result.errors,
                start_date=source.start_date,
            ),
        )
