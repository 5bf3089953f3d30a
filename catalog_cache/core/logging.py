from __future__ import annotations

import json
import logging
import logging.config
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime", "taskName"}

# Third-party loggers that are too chatty at INFO
_QUIET_LOGGERS = ("apscheduler", "aiohttp.access")


class JsonFormatter(logging.Formatter):
    """One JSON object per line, including ``extra=`` context fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "name": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RECORD_ATTRS and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack"] = record.stack_info
        return json.dumps(payload, ensure_ascii=False, default=str)


def _log_file_for(settings) -> Optional[Path]:
    if settings.environment == "test":
        return None
    if settings.log_file:
        return Path(settings.log_file).expanduser()
    return Path(settings.data_dir) / "logs" / "catalog_cache.log"


def build_logging_config(settings) -> Dict[str, Any]:
    """``dictConfig`` payload for ``settings``; nothing is touched on disk."""

    level = settings.log_level or "INFO"
    console_formatter = "json" if settings.log_json else "standard"
    handlers: Dict[str, Dict[str, Any]] = {
        "console": {
            "class": "logging.StreamHandler",
            "level": level,
            "formatter": console_formatter,
        },
    }
    log_file = _log_file_for(settings)
    if log_file is not None:
        handlers["file"] = {
            "class": "logging.handlers.RotatingFileHandler",
            "level": level,
            "formatter": "json",
            "filename": str(log_file),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
            "encoding": "utf-8",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {"format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s"},
            "json": {"()": "catalog_cache.core.logging.JsonFormatter"},
        },
        "handlers": handlers,
        "loggers": {name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
        "root": {"level": level, "handlers": sorted(handlers)},
    }


_configured = False


def configure_logging(settings=None, *, force: bool = False) -> None:
    """Configure application logging once per process (again with ``force``)."""

    global _configured
    if _configured and not force:
        return

    if settings is None:
        from catalog_cache.core.settings import get_settings

        settings = get_settings()

    config = build_logging_config(settings)
    file_handler = config["handlers"].get("file")
    if file_handler is not None:
        Path(file_handler["filename"]).parent.mkdir(parents=True, exist_ok=True)

    logging.config.dictConfig(config)
    logging.captureWarnings(True)
    _configured = True


__all__ = ["JsonFormatter", "build_logging_config", "configure_logging"]
