"""Logging configuration.

- Development: human-readable format on stderr
- Production: one JSON object per line (``LOG_JSON=true``)
- Level: ``LOG_LEVEL`` setting
"""

import json
import logging
import sys
from datetime import datetime, timezone

from core.settings import Settings

_EXTRA_FIELDS = ("tenant_id", "operation", "entity_key", "step")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info and record.exc_info[0] is not None:
            log_entry["exception"] = self.formatException(record.exc_info)
        for key in _EXTRA_FIELDS:
            val = getattr(record, key, None)
            if val is not None:
                log_entry[key] = val
        return json.dumps(log_entry, ensure_ascii=False)


class ReadableFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now().strftime("%H:%M:%S")
        base = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        tenant = getattr(record, "tenant_id", None)
        if tenant:
            base += f" [tenant={tenant}]"
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(settings: Settings) -> None:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if settings.log_json else ReadableFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_joinery_ops", False):
            root.removeHandler(existing)
    handler._joinery_ops = True
    root.addHandler(handler)
    root.setLevel(settings.log_level.upper())

    # Quiet noisy libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
