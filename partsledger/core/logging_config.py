import logging
import logging.config
import os
from datetime import datetime
from partsledger.core.config import settings

# one rotating file per stream, under LOG_DIR/<name>/
LOG_STREAMS = {
    "app": settings.LOG_LEVEL,
    "error": "ERROR",
    "monitor": "INFO",
    "access": "INFO",
    "celery": "INFO",
}

CONSOLE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"


def _file_handler(log_dir: str, stream: str, level: str, stamp: str) -> dict:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "level": level,
        "formatter": "file",
        "filename": os.path.join(log_dir, stream, f"{stream}-{stamp}.log"),
        "maxBytes": 10 * 1024 * 1024,
        "backupCount": 10,
        "encoding": "utf-8",
    }


def _logger(level: str, *handlers: str) -> dict:
    return {"level": level, "handlers": ["console", *handlers], "propagate": False}


def setup_logging():
    """Configure console and rotating file logging for the API and the worker"""

    log_dir = settings.LOG_DIR
    stamp = datetime.now().strftime("%Y-%m-%d")

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.LOG_LEVEL,
            "formatter": "console",
            "stream": "ext://sys.stdout",
        }
    }
    for stream, level in LOG_STREAMS.items():
        os.makedirs(os.path.join(log_dir, stream), exist_ok=True)
        handlers[f"{stream}_file"] = _file_handler(log_dir, stream, level, stamp)

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": CONSOLE_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
            "file": {"format": FILE_FORMAT, "datefmt": "%Y-%m-%d %H:%M:%S"},
        },
        "handlers": handlers,
        "loggers": {
            "": _logger(settings.LOG_LEVEL, "app_file", "error_file"),
            "partsledger.services.monitor": _logger("INFO", "monitor_file", "error_file"),
            "partsledger.workers": _logger("INFO", "monitor_file", "error_file"),
            "access": _logger("INFO", "access_file"),
            "celery": _logger("INFO", "celery_file"),
            # query echo stays out of the console
            "sqlalchemy.engine": {"level": "WARNING", "handlers": ["app_file"], "propagate": False},
        },
    })

    logger = logging.getLogger(__name__)
    logger.info("🚀 PartsLedger logging configured")
    logger.info(f"📝 Log level: {settings.LOG_LEVEL} | 🗂️  Logs directory: ./{log_dir}/")
