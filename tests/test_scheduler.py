import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest
from apscheduler.triggers.cron import CronTrigger

from hoarder_sender.scheduler import (
    JOB_ID,
    Frequency,
    Schedule,
    SchedulerService,
    TimeOfDay,
    parse_time_of_day,
)


def test_parse_time_of_day_invalid_falls_back_to_nine(caplog):
    caplog.set_level(logging.WARNING)
    assert parse_time_of_day("25:61") == TimeOfDay(9, 0)
    assert "Invalid time format" in caplog.text


def test_parse_time_of_day_pads_single_digits():
    parsed = parse_time_of_day("9:5")
    assert parsed == TimeOfDay(9, 5)
    assert parsed.label == "09:05"


@pytest.mark.parametrize("value", ["", "noon", "12", "12:60", "24:00", "7:30pm"])
def test_parse_time_of_day_rejects_garbage(value):
    assert parse_time_of_day(value) == TimeOfDay(9, 0)


def test_build_rejects_unknown_frequency():
    with pytest.raises(ValueError, match="Invalid notification frequency"):
        Schedule.build("hourly", "09:00", "UTC")


def test_build_rejects_unknown_timezone():
    with pytest.raises(ValueError, match="Unknown timezone"):
        Schedule.build("daily", "09:00", "Mars/Olympus")


def test_cron_expressions():
    assert Schedule.build("daily", "9:05", "UTC").cron_expression == "5 9 * * *"
    assert Schedule.build("weekly", "18:30", "UTC").cron_expression == "30 18 * * 1"
    assert Schedule.build("Monthly", "07:00", "UTC").cron_expression == "0 7 1 * *"


def test_daily_next_fire_same_day_and_next_day():
    schedule = Schedule.build("daily", "09:00", "UTC")
    before = datetime(2024, 3, 10, 8, 0, tzinfo=timezone.utc)
    exactly = datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)

    assert schedule.next_fire(before) == datetime(2024, 3, 10, 9, 0, tzinfo=timezone.utc)
    assert schedule.next_fire(exactly) == datetime(2024, 3, 11, 9, 0, tzinfo=timezone.utc)


def test_next_fire_uses_configured_timezone():
    schedule = Schedule.build("daily", "09:00", "America/New_York")
    # 12:00 UTC is 08:00 in New York during daylight saving time.
    now = datetime(2024, 7, 1, 12, 0, tzinfo=timezone.utc)

    fire = schedule.next_fire(now)

    assert fire.astimezone(ZoneInfo("America/New_York")).hour == 9
    assert fire.astimezone(timezone.utc) == datetime(2024, 7, 1, 13, 0, tzinfo=timezone.utc)


def test_weekly_fires_on_monday():
    schedule = Schedule.build("weekly", "10:00", "UTC")
    wednesday = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)
    monday_late = datetime(2024, 5, 20, 11, 0, tzinfo=timezone.utc)

    assert schedule.next_fire(wednesday) == datetime(2024, 5, 20, 10, 0, tzinfo=timezone.utc)
    assert schedule.next_fire(monday_late) == datetime(2024, 5, 27, 10, 0, tzinfo=timezone.utc)


def test_monthly_fires_on_first_and_rolls_over_year():
    schedule = Schedule.build("monthly", "09:00", "UTC")
    mid_december = datetime(2024, 12, 15, 0, 0, tzinfo=timezone.utc)
    early_first = datetime(2024, 6, 1, 8, 0, tzinfo=timezone.utc)

    assert schedule.next_fire(mid_december) == datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert schedule.next_fire(early_first) == datetime(2024, 6, 1, 9, 0, tzinfo=timezone.utc)


def test_next_fire_is_strictly_after_naive_input():
    schedule = Schedule.build("daily", "09:00", "UTC")

    fire = schedule.next_fire(datetime(2024, 3, 10, 9, 0))

    assert fire == datetime(2024, 3, 11, 9, 0, tzinfo=timezone.utc)


def test_trigger_is_a_cron_trigger_in_schedule_timezone():
    schedule = Schedule.build("weekly", "10:15", "Europe/Berlin")

    trigger = schedule.trigger

    assert isinstance(trigger, CronTrigger)
    assert trigger.timezone == ZoneInfo("Europe/Berlin")


def test_run_job_invokes_job():
    schedule = Schedule(Frequency.DAILY, TimeOfDay(9, 0), timezone.utc)
    calls = []
    service = SchedulerService(schedule, lambda: calls.append("run"))

    service._run_job()

    assert calls == ["run"]


def test_run_job_survives_failing_job(caplog):
    schedule = Schedule(Frequency.DAILY, TimeOfDay(9, 0), timezone.utc)

    def boom():
        raise RuntimeError("channel down")

    service = SchedulerService(schedule, boom)

    service._run_job()

    assert "Scheduled notification failed" in caplog.text


def test_service_start_registers_single_instance_job():
    schedule = Schedule(Frequency.DAILY, TimeOfDay(9, 0), timezone.utc)
    service = SchedulerService(schedule, lambda: None)
    before = datetime.now(timezone.utc)

    service.start()
    try:
        assert service.is_running
        job = service._scheduler.get_job(JOB_ID)
        assert job.max_instances == 1
        assert service.next_run > before
        assert service.next_run == schedule.next_fire(before)
    finally:
        service.stop()

    assert not service.is_running
    assert service.next_run is None


def test_service_start_twice_is_ignored(caplog):
    schedule = Schedule(Frequency.MONTHLY, TimeOfDay(9, 0), timezone.utc)
    service = SchedulerService(schedule, lambda: None)

    service.start()
    try:
        first = service._scheduler
        service.start()
        assert service._scheduler is first
        assert "Scheduler already started" in caplog.text
    finally:
        service.stop()


def test_stop_without_start_is_noop():
    schedule = Schedule(Frequency.DAILY, TimeOfDay(9, 0), timezone.utc)
    service = SchedulerService(schedule, lambda: None)

    service.stop()

    assert not service.is_running
