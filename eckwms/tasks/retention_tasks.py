"""Tasks for the scan retention sweep."""

import logging
from datetime import timedelta

from eckwms.extensions import scheduler
from eckwms.services.container import container
from eckwms.utils.scheduler import PeriodicJob

log = logging.getLogger("retention_tasks")

RETENTION_JOB_ID = 'retention_sweep'


def run_retention_sweep(app):
    """Run one retention sweep inside the app context."""
    with app.app_context():
        try:
            report = container().get('retention_service').run_sweep()
        except Exception as e:
            log.exception(f"Retention sweep crashed: {str(e)}")
            return None

        if report.total_deleted > 0:
            log.info(f"Retention sweep removed {report.total_deleted} scans")
        return report


def build_retention_job(app):
    config = app.config
    return PeriodicJob(
        id=RETENTION_JOB_ID,
        func=run_retention_sweep,
        args=[app],
        interval=timedelta(minutes=config.get('RETENTION_INTERVAL_MINUTES', 60)),
        run_on_start=config.get('RETENTION_RUN_ON_START', True),
        start_delay=timedelta(seconds=config.get('RETENTION_STARTUP_DELAY_SECONDS', 10))
    )


def setup_retention_jobs(app, job_scheduler=None, now=None):
    """Register the retention sweep with the scheduler."""
    job = build_retention_job(app)
    job.register(job_scheduler or scheduler, now=now)
    app.logger.info("Scheduled retention jobs registered")
    return job
