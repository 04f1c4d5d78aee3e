"""Start dates for incremental, cron-driven synchronization runs."""

import logging
from datetime import datetime, timedelta, UTC
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional

from ledgersync.config import SourceConfig
from ledgersync.utils.date_parser import ensure_utc, parse_datetime

logger = logging.getLogger(__name__)

# Stored run times are moved back by this much before use, so transactions
# that show up late at the source are still picked up
LAST_RUN_SAFETY_MARGIN = timedelta(days=3)


class CronPreset(str, Enum):
    """Schedules a host timer can run the importer on."""

    TEST = "test"
    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"

    @property
    def expression(self) -> str:
        """Cron expression for the host scheduler."""
        return _CRON_EXPRESSIONS[self]

    @property
    def lookback(self) -> timedelta:
        """Time between two runs of this schedule."""
        return _LOOKBACKS[self]


_CRON_EXPRESSIONS = {
    CronPreset.TEST: "* * * * *",
    CronPreset.DAILY: "0 0 * * *",
    CronPreset.WEEKLY: "0 0 * * 0",
    CronPreset.BIWEEKLY: "0 0 1,15 * *",
    CronPreset.MONTHLY: "0 0 1 * *",
}

_LOOKBACKS = {
    CronPreset.TEST: timedelta(days=60),
    CronPreset.DAILY: timedelta(days=1),
    CronPreset.WEEKLY: timedelta(days=7),
    CronPreset.BIWEEKLY: timedelta(days=15),
    CronPreset.MONTHLY: timedelta(days=30),
}


class LastRunStore:
    """Plain-text file holding the time of the last completed scheduled run."""

    def __init__(self, path: str):
        self.path = Path(path)

    def read(self) -> Optional[datetime]:
        """Return the stored timestamp, or None before the first run."""
        if not self.path.exists():
            return None
        text = self.path.read_text(encoding="utf-8").strip()
        if not text:
            return None
        return parse_datetime(text)

    def write(self, when: datetime) -> None:
        """Overwrite the stored timestamp."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(ensure_utc(when).isoformat(), encoding="utf-8")


class SyncWindowPlanner:
    """Decide where each source's scrape should start.

    Nothing here touches storage; the last-run timestamp is passed in.
    """

    def __init__(self, safety_margin: timedelta = LAST_RUN_SAFETY_MARGIN):
        self.safety_margin = safety_margin

    def adjust_last_run(self, stored: Optional[datetime]) -> Optional[datetime]:
        """Move a stored run time back by the safety margin."""
        if stored is None:
            return None
        return ensure_utc(stored) - self.safety_margin

    def plan_window(
        self, prior_run: Optional[datetime], configured_start: Optional[datetime]
    ) -> Optional[datetime]:
        """Return the effective start date for one source.

        The prior run replaces the configured start only when it is more
        recent, or when the source has no configured start at all.
        """
        if prior_run is None:
            return configured_start
        prior_run = ensure_utc(prior_run)
        if configured_start is None or prior_run > ensure_utc(configured_start):
            return prior_run
        return configured_start

    def plan_sources(
        self,
        sources: Iterable[SourceConfig],
        stored_last_run: Optional[datetime],
        preset: CronPreset,
        now: Optional[datetime] = None,
    ) -> list[SourceConfig]:
        """Return copies of ``sources`` with their start dates for this run.

        A source with neither a prior run nor a configured start falls back
        to twice the schedule's interval before ``now``.
        """
        now = ensure_utc(now) if now is not None else datetime.now(UTC)
        prior_run = self.adjust_last_run(stored_last_run)
        fallback = now - 2 * preset.lookback

        planned = []
        for source in sources:
            start = self.plan_window(prior_run, source.start_date)
            if start is None:
                start = fallback
            logger.debug(
                "Planned sync window",
                extra={"company_id": source.source_id, "start_date": start.isoformat()},
            )
            planned.append(source.with_start_date(start))
        return planned
