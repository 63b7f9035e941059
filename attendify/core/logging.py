# attendify/core/logging.py
import os
import logging
import logging.config
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from attendify.core.config import settings


class JsonFormatter(jsonlogger.JsonFormatter):
    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name


def build_logging_config(level: str | None = None, json_logs: bool | None = None, log_dir: str | None = None) -> Dict[str, Any]:
    level = (level or settings.LOG_LEVEL).upper()
    json_logs = settings.LOG_JSON if json_logs is None else json_logs
    log_dir = settings.LOG_DIR if log_dir is None else log_dir

    formatter = "json" if json_logs else "standard"
    config: Dict[str, Any] = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
            "json": {"()": JsonFormatter, "format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "level": level, "formatter": formatter},
        },
        "loggers": {
            "": {"handlers": ["console"], "level": level},
            "uvicorn.access": {"level": "WARNING"},
            "sqlalchemy.engine": {"level": "WARNING"},
        },
    }

    # arquivo rotativo só quando LOG_DIR estiver definido
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        config["handlers"]["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": formatter,
            "filename": os.path.join(log_dir, "attendify.log"),
            "maxBytes": 10485760,  # 10MB
            "backupCount": 5,
            "encoding": "utf8",
        }
        config["loggers"][""]["handlers"].append("file")
    return config


def setup_logging(**overrides) -> None:
    logging.config.dictConfig(build_logging_config(**overrides))
