# logging_config.py
# ==============================================================================
# Logging setup — one dictConfig shared by the API, the dashboard and the CLI
# ==============================================================================

import logging
import logging.config
import os

_configured = False


def get_logging_config():
    """Build the dictConfig for the current LOG_LEVEL / LOG_FORMAT."""
    log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_format = os.getenv('LOG_FORMAT', 'detailed')

    formatters = {
        'simple': {
            'format': '%(levelname)s - %(message)s'
        },
        'detailed': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        },
        'json': {
            'format': '{"timestamp": "%(asctime)s", "logger": "%(name)s", '
                      '"level": "%(levelname)s", "message": "%(message)s"}',
            'datefmt': '%Y-%m-%d %H:%M:%S'
        }
    }
    if log_format not in formatters:
        log_format = 'detailed'

    return {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': formatters,
        'handlers': {
            'console': {
                'class': 'logging.StreamHandler',
                'level': log_level,
                'formatter': log_format,
                'stream': 'ext://sys.stdout'
            }
        },
        'loggers': {
            'sqlalchemy.engine': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False
            },
            'httpx': {
                'level': 'WARNING',
                'handlers': ['console'],
                'propagate': False
            },
            'werkzeug': {
                'level': 'INFO',
                'handlers': ['console'],
                'propagate': False
            }
        },
        'root': {
            'level': log_level,
            'handlers': ['console']
        }
    }


def setup_logging(force=False):
    """Apply the logging config once per process."""
    global _configured
    if _configured and not force:
        return
    logging.config.dictConfig(get_logging_config())
    _configured = True
    logging.getLogger(__name__).debug("Logging configured")
