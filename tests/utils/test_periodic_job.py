"""Tests for the PeriodicJob scheduling abstraction"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from eckwms.utils.scheduler import PeriodicJob

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def noop():
    pass


def test_first_run_after_start_delay_when_run_on_start():
    job = PeriodicJob("job", noop, timedelta(minutes=60), run_on_start=True,
                      start_delay=timedelta(seconds=10))

    assert job.first_run_time(NOW) == NOW + timedelta(seconds=10)


def test_first_run_after_full_interval_without_run_on_start():
    job = PeriodicJob("job", noop, timedelta(minutes=60))

    assert job.first_run_time(NOW) == NOW + timedelta(minutes=60)


def test_next_run_times_follow_interval():
    job = PeriodicJob("job", noop, timedelta(hours=1), run_on_start=True)

    times = job.next_run_times(3, NOW)

    assert times == [NOW, NOW + timedelta(hours=1), NOW + timedelta(hours=2)]


def test_default_now_is_timezone_aware():
    job = PeriodicJob("job", noop, timedelta(minutes=5))

    assert job.first_run_time().tzinfo is not None


def test_rejects_non_positive_interval():
    with pytest.raises(ValueError):
        PeriodicJob("job", noop, timedelta(0))


def test_register_adds_interval_job():
    scheduler = MagicMock()
    job = PeriodicJob("job", noop, timedelta(minutes=30), run_on_start=True,
                      start_delay=timedelta(seconds=5), args=["arg"])

    job.register(scheduler, now=NOW)

    scheduler.add_job.assert_called_once_with(
        id="job",
        func=noop,
        args=["arg"],
        trigger="interval",
        seconds=1800,
        next_run_time=NOW + timedelta(seconds=5),
        replace_existing=True,
        coalesce=True,
        max_instances=1
    )
