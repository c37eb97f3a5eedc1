import logging
import time

from flask import Blueprint, current_app, jsonify
from sqlalchemy.sql import text

from eckwms.extensions import db, scheduler
from eckwms.tasks.retention_tasks import RETENTION_JOB_ID
from eckwms.utils.clock import isoformat_utc, utcnow

health_bp = Blueprint('health', __name__)
log = logging.getLogger(__name__)
start_time = time.time()


def _check_db_connection():
    """Check if the database connection is working."""
    try:
        db.session.execute(text('SELECT 1'))
        return True
    except Exception as e:
        db.session.rollback()
        log.error(f"Database connection check failed: {str(e)}")
        return False


def _retention_job_status():
    if not scheduler.running:
        return {"scheduled": False}
    job = scheduler.get_job(RETENTION_JOB_ID)
    if not job:
        return {"scheduled": False}
    return {
        "scheduled": True,
        "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None
    }


@health_bp.route('/')
def index():
    """Service health status for monitoring."""
    database_ok = _check_db_connection()
    status = {
        'status': 'healthy' if database_ok else 'degraded',
        'service': current_app.config.get('SERVICE_NAME', 'eckWMS Global Server'),
        'timestamp': isoformat_utc(utcnow()),
        'uptime': round(time.time() - start_time, 1),
        'database': 'connected' if database_ok else 'disconnected',
        'retention': _retention_job_status(),
        'version': current_app.config.get('VERSION', '1.0.0')
    }
    return jsonify(status), 200 if database_ok else 503


@health_bp.route('/liveness')
def liveness():
    """Liveness check."""
    return jsonify({'status': 'alive'})
