"""Notifications the importer sends to its host application."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Optional


@dataclass(frozen=True)
class ImportSuccess:
    """Transactions of one account were imported without errors."""

    account_id: str
    account_name: str
    added: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    start_date: Optional[datetime] = None


@dataclass(frozen=True)
class ImportFailure:
    """Processing of one source failed.

    ``errors`` lists every underlying cause; for retried operations that is
    one entry per attempt.
    """

    company_id: str
    start_date: Optional[datetime]
    error: BaseException
    errors: list[BaseException] = field(default_factory=list)


class ImportEvents:
    """Receives importer notifications. Every method is a no-op by default."""

    def on_import_success(self, result: ImportSuccess) -> None:
        pass

    def on_import_error(self, result: ImportFailure) -> None:
        pass

    def on_import_finish(self) -> None:
        pass

    def on_cron_start(self) -> None:
        pass

    def on_cron_finish(self) -> None:
        pass


class CallbackEvents(ImportEvents):
    """Forward notifications to plain callables."""

    def __init__(
        self,
        on_import_success: Optional[Callable[[ImportSuccess], None]] = None,
        on_import_error: Optional[Callable[[ImportFailure], None]] = None,
        on_import_finish: Optional[Callable[[], None]] = None,
        on_cron_start: Optional[Callable[[], None]] = None,
        on_cron_finish: Optional[Callable[[], None]] = None,
    ):
        self._on_import_success = on_import_success
        self._on_import_error = on_import_error
        self._on_import_finish = on_import_finish
        self._on_cron_start = on_cron_start
        self._on_cron_finish = on_cron_finish

    def on_import_success(self, result: ImportSuccess) -> None:
        if self._on_import_success:
            self._on_import_success(result)

    def on_import_error(self, result: ImportFailure) -> None:
        if self._on_import_error:
            self._on_import_error(result)

    def on_import_finish(self) -> None:
        if self._on_import_finish:
            self._on_import_finish()

    def on_cron_start(self) -> None:
        if self._on_cron_start:
            self._on_cron_start()

    def on_cron_finish(self) -> None:
        if self._on_cron_finish:
            self._on_cron_finish()
