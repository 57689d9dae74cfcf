"""
Logging setup for the app
"""
from logging.config import dictConfig


def setup_logging(level="INFO"):
    dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
            }
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "standard",
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": level,
                "propagate": True
            },
            "werkzeug": {
                "handlers": ["console"],
                "level": "INFO",
                "propagate": False
            },
        }
    })
