from __future__ import annotations

import threading
from datetime import datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from croniter import croniter

from .config import SchedulerConfig
from .logger import get_logger

LOG = get_logger(__name__)

MAX_SLEEP_SECONDS = 60


class BackupScheduler:
    """Calls ``trigger`` whenever the configured cron expression fires."""

    def __init__(
        self,
        config: SchedulerConfig,
        trigger: Callable[[], object],
        stop_event: Optional[threading.Event] = None,
        clock: Optional[Callable[[ZoneInfo], datetime]] = None,
    ) -> None:
        self._config = config
        self._trigger = trigger
        self._stop_event = stop_event or threading.Event()
        self._clock = clock or datetime.now
        self._timezone = ZoneInfo(config.timezone)

    @property
    def stop_event(self) -> threading.Event:
        return self._stop_event

    def stop(self) -> None:
        self._stop_event.set()

    def reconfigure(self, config: SchedulerConfig) -> None:
        self._config = config
        self._timezone = ZoneInfo(config.timezone)

    def next_run(self, reference: datetime) -> datetime:
        return croniter(self._config.cron, reference).get_next(datetime)

    def run_forever(self) -> int:
        now = self._clock(self._timezone)
        if self._config.run_on_startup:
            next_run = now
            LOG.info("Executing initial backup immediately")
        else:
            next_run = self.next_run(now)
            LOG.info("Next backup scheduled for %s", next_run.isoformat())

        runs = 0
        while not self._stop_event.is_set():
            now = self._clock(self._timezone)
            if now >= next_run:
                self._trigger()
                runs += 1
                next_run = self.next_run(self._clock(self._timezone))
                LOG.info("Next backup scheduled for %s", next_run.isoformat())
                continue

            sleep_for = max((next_run - now).total_seconds(), 0)
            self._stop_event.wait(min(sleep_for, MAX_SLEEP_SECONDS))

        LOG.info("Scheduler stopped")
        return runs
