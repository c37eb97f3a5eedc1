"""Periodic job definitions for the APScheduler-backed scheduler."""

import logging
from datetime import datetime, timedelta, timezone

log = logging.getLogger(__name__)


class PeriodicJob:
    """A job that ticks on a fixed interval, optionally firing soon after start.

    The first run time is computed from an explicit ``now`` so cadence and
    startup behaviour can be checked without waiting on the wall clock.
    """

    def __init__(self, id, func, interval, run_on_start=False, start_delay=None, args=None):
        """Initialize the job.

        Args:
            id: Scheduler job id
            func: Callable to run
            interval: timedelta between runs
            run_on_start: Fire once shortly after registration instead of
                waiting a full interval
            start_delay: Delay before that first run (timedelta)
            args: Positional arguments passed to ``func``
        """
        if interval <= timedelta(0):
            raise ValueError("interval must be positive")
        self.id = id
        self.func = func
        self.interval = interval
        self.run_on_start = run_on_start
        self.start_delay = start_delay or timedelta(0)
        self.args = list(args or [])

    def first_run_time(self, now=None):
        now = now or datetime.now(timezone.utc)
        if self.run_on_start:
            return now + self.start_delay
        return now + self.interval

    def next_run_times(self, count, now=None):
        """The first ``count`` run times, for inspection and tests."""
        first = self.first_run_time(now)
        return [first + self.interval * i for i in range(count)]

    def job_kwargs(self, now=None):
        return {
            "id": self.id,
            "func": self.func,
            "args": self.args,
            "trigger": "interval",
            "seconds": int(self.interval.total_seconds()),
            "next_run_time": self.first_run_time(now),
            "replace_existing": True,
            "coalesce": True,
            "max_instances": 1
        }

    def register(self, scheduler, now=None):
        """Add the job to an APScheduler (or Flask-APScheduler) instance."""
        kwargs = self.job_kwargs(now)
        scheduler.add_job(**kwargs)
        log.info(f"Scheduled job {self.id}: every {self.interval}, first run at {kwargs['next_run_time']}")
        return kwargs
