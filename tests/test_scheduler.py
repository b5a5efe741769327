"""Tests covering the cron driven backup scheduler."""

import threading
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

from library_backup.config import SchedulerConfig
from library_backup.scheduler import MAX_SLEEP_SECONDS, BackupScheduler

BERLIN = ZoneInfo("Europe/Berlin")


class SteppingClock:
    """Clock that moves forward by ``step`` on every call."""

    def __init__(self, start, step):
        self.current = start
        self.step = step

    def __call__(self, tz):
        value = self.current
        self.current = self.current + self.step
        return value


class RecordingEvent(threading.Event):
    def __init__(self):
        super().__init__()
        self.waits = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        self.set()
        return True


def test_next_run_uses_cron_expression():
    scheduler = BackupScheduler(SchedulerConfig(cron="0 3 * * *", timezone="Europe/Berlin"), trigger=lambda: None)
    reference = datetime(2026, 10, 19, 1, 0, tzinfo=BERLIN)

    assert scheduler.next_run(reference) == datetime(2026, 10, 19, 3, 0, tzinfo=BERLIN)


def test_run_on_startup_triggers_immediately():
    calls = []
    config = SchedulerConfig(cron="0 3 * * *", timezone="Europe/Berlin", run_on_startup=True)
    clock = SteppingClock(datetime(2026, 10, 19, 1, 0, tzinfo=BERLIN), timedelta(seconds=1))
    scheduler = BackupScheduler(config, trigger=lambda: calls.append(1) or scheduler.stop(), clock=clock)

    assert scheduler.run_forever() == 1
    assert calls == [1]


def test_triggers_each_time_the_schedule_fires():
    calls = []
    config = SchedulerConfig(cron="* * * * *", run_on_startup=True)
    clock = SteppingClock(datetime(2026, 10, 19, 1, 0, tzinfo=ZoneInfo("UTC")), timedelta(minutes=2))

    def trigger():
        calls.append(1)
        if len(calls) == 2:
            scheduler.stop()

    scheduler = BackupScheduler(config, trigger=trigger, clock=clock)

    assert scheduler.run_forever() == 2


def test_waits_until_next_run_in_bounded_steps():
    calls = []
    event = RecordingEvent()
    config = SchedulerConfig(cron="0 3 * * *", timezone="Europe/Berlin")
    clock = SteppingClock(datetime(2026, 10, 19, 1, 0, tzinfo=BERLIN), timedelta(0))
    scheduler = BackupScheduler(config, trigger=lambda: calls.append(1), stop_event=event, clock=clock)

    assert scheduler.run_forever() == 0
    assert calls == []
    assert event.waits == [MAX_SLEEP_SECONDS]


def test_stop_before_start_exits_without_trigger():
    calls = []
    scheduler = BackupScheduler(SchedulerConfig(cron="* * * * *", run_on_startup=True), trigger=lambda: calls.append(1))
    scheduler.stop()

    assert scheduler.run_forever() == 0
    assert calls == []
    assert scheduler.stop_event.is_set()


def test_reconfigure_changes_schedule():
    scheduler = BackupScheduler(SchedulerConfig(cron="0 3 * * *"), trigger=lambda: None)
    scheduler.reconfigure(SchedulerConfig(cron="30 4 * * *", timezone="Europe/Berlin"))
    reference = datetime(2026, 10, 19, 1, 0, tzinfo=BERLIN)

    assert scheduler.next_run(reference) == datetime(2026, 10, 19, 4, 30, tzinfo=BERLIN)
