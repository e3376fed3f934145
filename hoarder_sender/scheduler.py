"""Recurring trigger for the notification cycle."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Callable, NamedTuple, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

logger = logging.getLogger(__name__)

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5]?[0-9])$")
JOB_ID = "bookmark_notification"


class Frequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class TimeOfDay(NamedTuple):
    hour: int
    minute: int

    @property
    def label(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


DEFAULT_TIME = TimeOfDay(9, 0)


def parse_time_of_day(value: str) -> TimeOfDay:
    """Parse a 24-hour ``H:MM`` string, falling back to 09:00 when malformed."""
    match = TIME_PATTERN.match((value or "").strip())
    if not match:
        logger.warning("Invalid time format: %s, using default 09:00", value)
        return DEFAULT_TIME
    return TimeOfDay(int(match.group(1)), int(match.group(2)))


def load_timezone(name: str) -> tzinfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown timezone: {name!r}") from None


@dataclass(frozen=True)
class Schedule:
    frequency: Frequency
    time_of_day: TimeOfDay
    tz: tzinfo

    @classmethod
    def build(cls, frequency: str, time_to_send: str, timezone_name: str) -> "Schedule":
        try:
            freq = Frequency(frequency.strip().lower())
        except ValueError:
            raise ValueError(f"Invalid notification frequency: {frequency}") from None
        return cls(freq, parse_time_of_day(time_to_send), load_timezone(timezone_name))

    @property
    def cron_expression(self) -> str:
        minute, hour = self.time_of_day.minute, self.time_of_day.hour
        if self.frequency is Frequency.DAILY:
            return f"{minute} {hour} * * *"
        if self.frequency is Frequency.WEEKLY:
            return f"{minute} {hour} * * 1"
        return f"{minute} {hour} 1 * *"

    @property
    def trigger(self) -> CronTrigger:
        """Cron trigger firing daily, every Monday or on the 1st of the month."""
        fields = {
            "hour": self.time_of_day.hour,
            "minute": self.time_of_day.minute,
            "timezone": self.tz,
        }
        if self.frequency is Frequency.WEEKLY:
            fields["day_of_week"] = "mon"
        elif self.frequency is Frequency.MONTHLY:
            fields["day"] = 1
        return CronTrigger(**fields)

    def next_fire(self, after: datetime) -> datetime:
        """Return the first trigger time strictly later than ``after``."""
        if after.tzinfo is None:
            after = after.replace(tzinfo=timezone.utc)
        # The trigger treats ``now`` as inclusive.
        return self.trigger.get_next_fire_time(None, after + timedelta(microseconds=1))


class SchedulerService:
    """Runs ``job`` on a background APScheduler whenever the schedule comes due."""

    def __init__(self, schedule: Schedule, job: Callable[[], object]) -> None:
        self.schedule = schedule
        self.job = job
        self._scheduler: Optional[BackgroundScheduler] = None

    def _run_job(self) -> None:
        logger.info("Scheduled trigger fired (%s)", self.schedule.cron_expression)
        try:
            self.job()
        except Exception:  # noqa: BLE001
            logger.exception("Scheduled notification failed.")
        next_run = self.next_run
        if next_run is not None:
            logger.info("Next notification scheduled for %s", next_run.isoformat())

    def start(self) -> None:
        if self._scheduler is not None:
            logger.warning("Scheduler already started")
            return

        scheduler = BackgroundScheduler(timezone=self.schedule.tz)
        scheduler.add_job(
            self._run_job,
            trigger=self.schedule.trigger,
            id=JOB_ID,
            name="Random bookmark notification",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "Scheduler started with %s frequency (%s)",
            self.schedule.frequency.value,
            self.schedule.cron_expression,
        )
        logger.info("Using timezone: %s", self.schedule.tz)
        logger.info("Scheduled to run at: %s", self.schedule.time_of_day.label)
        if self.next_run is not None:
            logger.info(
                "Next notification scheduled for %s", self.next_run.isoformat()
            )

    def stop(self, wait: bool = True) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=wait)
        self._scheduler = None
        logger.info("Scheduler stopped")

    @property
    def is_running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    @property
    def next_run(self) -> Optional[datetime]:
        if self._scheduler is None:
            return None
        job = self._scheduler.get_job(JOB_ID)
        return getattr(job, "next_run_time", None) if job is not None else None
