"""Gunicorn configuration file."""

import os

# Server socket
bind = os.getenv("GUNICORN_BIND", "0.0.0.0:8000")
backlog = 2048

# A single worker keeps the in-process retention scheduler from running twice
workers = int(os.getenv("GUNICORN_WORKERS", "1"))
worker_class = os.getenv("GUNICORN_WORKER_CLASS", "gthread")
threads = int(os.getenv("GUNICORN_THREADS", "4"))
max_requests = int(os.getenv("GUNICORN_MAX_REQUESTS", "1000"))
max_requests_jitter = int(os.getenv("GUNICORN_MAX_REQUESTS_JITTER", "100"))
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
graceful_timeout = int(os.getenv("GUNICORN_GRACEFUL_TIMEOUT", "30"))
keepalive = int(os.getenv("GUNICORN_KEEPALIVE", "5"))

reload = os.getenv("FLASK_ENV", "production") == "development"

chdir = os.getenv("GUNICORN_CHDIR", os.path.dirname(os.path.abspath(__file__)))
daemon = False
user = os.getenv("GUNICORN_USER", None)
group = os.getenv("GUNICORN_GROUP", None)

# Logging
errorlog = os.getenv("GUNICORN_ERROR_LOG", "-")
loglevel = os.getenv("GUNICORN_LOG_LEVEL", "info")
accesslog = os.getenv("GUNICORN_ACCESS_LOG", "-")
access_log_format = '%(h)s "%(r)s" %(s)s %(b)s %(L)ss "%(a)s"'

proc_name = "eckwms-global"

# Scan payloads are small; keep request limits tight
limit_request_line = 4094
limit_request_fields = 100
limit_request_field_size = 8190

# The internal registry reads X-Forwarded-For for the caller's public IP
forwarded_allow_ips = os.getenv("GUNICORN_FORWARDED_ALLOW_IPS", "127.0.0.1,::1")
secure_scheme_headers = {
    'X-FORWARDED-PROTO': 'https',
}

preload_app = False
worker_tmp_dir = os.getenv("GUNICORN_WORKER_TMP_DIR", "/dev/shm")


def on_starting(server):
    server.log.info("eckWMS global server is starting")


def worker_exit(server, worker):
    """Stop the scheduler when a worker exits."""
    from eckwms.tasks import shutdown_tasks
    shutdown_tasks()
    server.log.info(f"Worker {worker.pid} exited")
