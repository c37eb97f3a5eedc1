"""
Initialize Flask extensions for the application.

These extensions are instantiated here and initialized in the application factory.
"""

from flask import request
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_apscheduler import APScheduler


def rate_limit_key():
    """Rate limit per instance credential, falling back to the client address."""
    api_key = request.headers.get('X-API-Key')
    if api_key:
        return f"api_key:{api_key}"
    return get_remote_address()


# SQLAlchemy for database ORM
db = SQLAlchemy()

# Flask-Migrate for database migrations
migrate = Migrate()

# Rate limiting; default limits come from RATELIMIT_DEFAULT in the config
limiter = Limiter(key_func=rate_limit_key)

# Scheduler for the retention sweep
scheduler = APScheduler()


def init_extensions(app):
    """Initialize all Flask extensions."""
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
