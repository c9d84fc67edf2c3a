import logging
import logging.config
from pathlib import Path
from examhall.core.config import settings

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        }
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "level": "DEBUG",
            "formatter": "default",
            "stream": "ext://sys.stdout"
        }
    },
    "root": {
        "level": "INFO",
        "handlers": ["console"]
    },
    "loggers": {
        "examhall": {
            "level": "INFO",
            "handlers": ["console"],
            "propagate": False
        },
        "uvicorn.access": {
            "level": "WARNING",
            "handlers": ["console"],
            "propagate": False
        }
    }
}

def build_logging_config(level: str = None, log_file: str = None) -> dict:
    config = {
        **LOGGING_CONFIG,
        "handlers": dict(LOGGING_CONFIG["handlers"]),
        "root": dict(LOGGING_CONFIG["root"]),
        "loggers": {name: dict(cfg) for name, cfg in LOGGING_CONFIG["loggers"].items()},
    }
    level = (level or settings.LOG_LEVEL).upper()
    config["root"]["level"] = level
    config["loggers"]["examhall"]["level"] = level

    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": "INFO",
            "formatter": "default",
            "filename": log_file,
            "maxBytes": 10485760,
            "backupCount": 5
        }
        config["root"]["handlers"] = ["console", "file"]
        config["loggers"]["examhall"]["handlers"] = ["console", "file"]

    return config

def configure_logging():
    logging.config.dictConfig(build_logging_config(settings.LOG_LEVEL, settings.LOG_FILE))
