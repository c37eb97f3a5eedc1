import os
import logging

from flask import Flask

from eckwms.extensions import init_extensions
from eckwms.errors import register_error_handlers
from eckwms.services.container import init_container
from eckwms.utils.logging_config import configure_logging

log = logging.getLogger(__name__)


def create_app(test_config=None):
    """Application factory function."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    from eckwms.config import get_config
    if test_config is None:
        config_name = os.environ.get('FLASK_ENV', 'default')
        app.config.from_object(get_config(config_name))
    else:
        # Test configs start from the testing defaults
        app.config.from_object(get_config('testing'))
        app.config.from_mapping(test_config)

    # Configure logging
    configure_logging(app)

    # Initialize extensions
    init_extensions(app)

    # Make sure models are registered with SQLAlchemy
    from eckwms import models  # noqa: F401

    init_container(app)

    # Register error handlers
    register_error_handlers(app)

    register_blueprints(app)

    from eckwms.cli import register_commands
    register_commands(app)

    # Initialize scheduler in non-testing environments
    if app.config.get('SCHEDULER_ENABLED') and not app.config.get('TESTING'):
        from eckwms.tasks import init_tasks
        init_tasks(app)

    @app.teardown_appcontext
    def teardown_db(exception=None):
        """Clean up at the end of the request."""
        from eckwms.extensions import db
        db.session.remove()

    return app


def register_blueprints(app):
    """Register all blueprints with the application."""
    from eckwms.web.api import api_bp
    from eckwms.web.internal import internal_bp
    from eckwms.web.health import health_bp

    app.register_blueprint(api_bp, url_prefix='/eckwms')
    app.register_blueprint(internal_bp, url_prefix='/ECK')
    app.register_blueprint(health_bp, url_prefix='/health')
    log.debug("Registered blueprints: api, internal, health")
