from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence
from zoneinfo import ZoneInfo

from .config import LotterySettings
from .tasks import LotteryTasks

MONDAY = 0
SATURDAY = 5


@dataclass(frozen=True)
class Job:
    """A task that fires once a week at a wall-clock time."""

    name: str
    weekday: int
    hour: int
    minute: int
    action: Callable[[], object]

    def next_run(self, now: dt.datetime) -> dt.datetime:
        """First occurrence strictly after ``now`` in ``now``'s timezone."""
        days_ahead = (self.weekday - now.weekday()) % 7
        candidate = (now + dt.timedelta(days=days_ahead)).replace(
            hour=self.hour, minute=self.minute, second=0, microsecond=0
        )
        if candidate <= now:
            candidate += dt.timedelta(days=7)
        return candidate


def default_jobs(tasks: LotteryTasks) -> List[Job]:
    return [
        Job("balance-check", MONDAY, 13, 0, tasks.check_balance),
        Job("balance-and-buy", MONDAY, 19, 0, tasks.check_balance_and_buy),
        Job("winning-check", SATURDAY, 21, 0, tasks.check_winning),
    ]


class LotteryScheduler:
    def __init__(
        self,
        settings: LotterySettings,
        jobs: Sequence[Job],
        logger: Optional[logging.Logger] = None,
        clock: Optional[Callable[[], dt.datetime]] = None,
    ) -> None:
        self._settings = settings
        self._jobs = list(jobs)
        self._logger = logger or logging.getLogger("dhlotto.scheduler")
        zone = ZoneInfo(settings.schedule.timezone)
        self._clock = clock or (lambda: dt.datetime.now(zone))
        self._next_runs: Dict[str, dt.datetime] = {}

    @property
    def jobs(self) -> List[Job]:
        return list(self._jobs)

    def next_runs(self) -> Dict[str, dt.datetime]:
        return dict(self._next_runs)

    def _plan(self, now: dt.datetime) -> None:
        for job in self._jobs:
            self._next_runs[job.name] = job.next_run(now)
            self._logger.info("Job %s next runs at %s", job.name, self._next_runs[job.name].isoformat())

    def run_pending(self, now: Optional[dt.datetime] = None) -> List[str]:
        """Run every job whose time has come; returns the names that ran."""
        now = now or self._clock()
        if not self._next_runs:
            self._plan(now)
        ran: List[str] = []
        for job in self._jobs:
            due = self._next_runs[job.name]
            if now < due:
                continue
            self._logger.info("Running scheduled job %s (due %s)", job.name, due.isoformat())
            try:
                job.action()
            except Exception as exc:
                self._logger.exception("Scheduled job %s failed: %s", job.name, exc)
            ran.append(job.name)
            self._next_runs[job.name] = job.next_run(max(now, due))
            self._logger.info("Job %s next runs at %s", job.name, self._next_runs[job.name].isoformat())
        return ran

    def run_forever(self, stop_event: threading.Event) -> None:
        interval = self._settings.schedule.poll_interval_seconds
        self._logger.info("Scheduler started; timezone=%s poll interval=%s", self._settings.schedule.timezone, interval)
        self._plan(self._clock())
        while not stop_event.is_set():
            self.run_pending()
            stop_event.wait(interval)
        self._logger.info("Scheduler stopped.")

    def run_once(self, name: str) -> object:
        for job in self._jobs:
            if job.name == name:
                return job.action()
        raise KeyError(f"unknown job: {name}")
