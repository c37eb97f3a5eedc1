"""Background task scheduling."""

import logging

from eckwms.extensions import scheduler

log = logging.getLogger("tasks")


def init_tasks(app):
    """Register scheduled jobs and start the scheduler."""
    from eckwms.tasks.retention_tasks import setup_retention_jobs

    scheduler.init_app(app)
    setup_retention_jobs(app)
    scheduler.start()
    log.info("Scheduler started")


def shutdown_tasks():
    """Shutdown the scheduler gracefully."""
    if scheduler.running:
        log.info("Shutting down scheduler")
        scheduler.shutdown(wait=False)
