import logging
import json
import os
from logging.config import dictConfig


class CustomJSONFormatter(logging.Formatter):
    """Format logs as JSON for better parsing by log systems."""

    def format(self, record):
        log_data = {
            'timestamp': self.formatTime(record),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # Structured retention fields (category, tier, count, reason)
        if hasattr(record, 'retention'):
            log_data['retention'] = record.retention

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(app):
    """Configure logging for the application from LOG_LEVEL/LOG_FORMAT/LOG_DIR."""
    log_level = app.config.get('LOG_LEVEL', 'INFO').upper()
    formatter = 'json' if app.config.get('LOG_FORMAT') == 'json' else 'default'

    handlers = {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': formatter,
            'level': log_level
        }
    }

    log_dir = app.config.get('LOG_DIR')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        handlers['file'] = {
            'class': 'logging.handlers.RotatingFileHandler',
            'formatter': 'json',
            'filename': os.path.join(log_dir, 'eckwms.log'),
            'maxBytes': 10485760,  # 10 MB
            'backupCount': 10,
            'level': log_level
        }

    dictConfig({
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': CustomJSONFormatter
            },
            'default': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            }
        },
        'handlers': handlers,
        'root': {
            'level': log_level,
            'handlers': list(handlers)
        }
    })
