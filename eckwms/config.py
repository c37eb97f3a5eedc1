import os


def _env_bool(name, default):
    return os.environ.get(name, default).lower() == 'true'


class Config:
    """Base configuration for the application."""

    # Flask settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'dev-key-please-change-in-production'
    DEBUG = False
    TESTING = False

    # Database settings
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///eckwms.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'text')

    # Credentials
    PUBLIC_API_KEY = os.environ.get('PUBLIC_API_KEY', 'public-demo-key-for-eckwms-app')
    INTERNAL_API_KEY = os.environ.get('INTERNAL_API_KEY') or os.environ.get('GLOBAL_SERVER_API_KEY')

    # Pull/confirm protocol
    PULL_DEFAULT_LIMIT = int(os.environ.get('PULL_DEFAULT_LIMIT', 100))
    PULL_MAX_LIMIT = int(os.environ.get('PULL_MAX_LIMIT', 1000))
    SCAN_REDELIVERY_TIMEOUT_MINUTES = int(os.environ.get('SCAN_REDELIVERY_TIMEOUT_MINUTES', 15))
    CONFIRMED_GRACE_DAYS = int(os.environ.get('CONFIRMED_GRACE_DAYS', 7))

    # Retention policy
    FREE_TIER_STALE_BUFFER_DAYS = int(os.environ.get('FREE_TIER_STALE_BUFFER_DAYS', 7))
    RETENTION_INTERVAL_MINUTES = int(os.environ.get('RETENTION_INTERVAL_MINUTES', 60))
    RETENTION_RUN_ON_START = _env_bool('RETENTION_RUN_ON_START', 'true')
    RETENTION_STARTUP_DELAY_SECONDS = int(os.environ.get('RETENTION_STARTUP_DELAY_SECONDS', 10))
    SCHEDULER_ENABLED = _env_bool('SCHEDULER_ENABLED', 'true')
    SCHEDULER_API_ENABLED = False

    # Instance registry
    INSTANCE_DELETE_POLICY = os.environ.get('INSTANCE_DELETE_POLICY', 'orphan')
    LOCAL_SERVER_PORT = int(os.environ.get('LOCAL_SERVER_PORT', 3000))
    GLOBAL_SERVER_URL = os.environ.get('GLOBAL_SERVER_URL', 'https://pda.repair')

    # Rate limiting
    RATELIMIT_ENABLED = _env_bool('RATELIMIT_ENABLED', 'true')
    RATELIMIT_DEFAULT = os.environ.get('RATELIMIT_DEFAULT', '600 per minute')
    RATELIMIT_STORAGE_URI = os.environ.get('RATELIMIT_STORAGE_URI', 'memory://')
    SCAN_RATE_LIMIT = os.environ.get('SCAN_RATE_LIMIT', '1200 per minute')

    # Application settings
    SERVICE_NAME = 'eckWMS Global Server'
    VERSION = '1.0.0'


class DevelopmentConfig(Config):
    """Development configuration."""

    DEBUG = True

    # Use SQLite for development
    SQLALCHEMY_DATABASE_URI = os.environ.get('DEV_DATABASE_URL') or 'sqlite:///dev.db'


class TestingConfig(Config):
    """Testing configuration."""

    TESTING = True
    DEBUG = True

    # Use in-memory SQLite for testing
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'

    INTERNAL_API_KEY = 'test-internal-key'
    RATELIMIT_ENABLED = False
    SCHEDULER_ENABLED = False


class ProductionConfig(Config):
    """Production configuration."""

    # Ensure proper secret key is set
    SECRET_KEY = os.environ.get('SECRET_KEY')
    LOG_FORMAT = os.environ.get('LOG_FORMAT', 'json')


# Configuration dictionary
config_dict = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': DevelopmentConfig
}


def get_config(config_name=None):
    """Get configuration class based on environment."""
    if not config_name:
        config_name = os.environ.get('FLASK_ENV', 'default')
    return config_dict.get(config_name, config_dict['default'])
