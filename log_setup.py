"""
Logging configuration utilities.
"""
import json
import logging
import os


class JsonFormatter(logging.Formatter):
    """JSON format for production log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "ts": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "user_id"):
            log_obj["user_id"] = record.user_id
        if hasattr(record, "provider"):
            log_obj["provider"] = record.provider
        if record.exc_info:
            log_obj["exc"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, ensure_ascii=False)


def setup_logging(level=None) -> None:
    """Configure root logging for the application (LOG_LEVEL, LOG_FORMAT)."""
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    log_format = os.environ.get("LOG_FORMAT", "default")
    if log_format == "json":
        for h in logging.root.handlers[:]:
            logging.root.removeHandler(h)
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
        logging.root.addHandler(handler)
        logging.root.setLevel(level)
    else:
        logging.basicConfig(
            format="[%(levelname)s/%(asctime)s] %(name)s: %(message)s",
            level=level,
        )
