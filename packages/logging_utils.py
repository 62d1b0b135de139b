import json
import logging
import os
from datetime import datetime, timezone

from .request_context import computation_var, request_id_var

CONTEXT_FIELDS = ("request_id", "computation")
TEXT_FORMAT = (
    "%(asctime)s %(levelname)s %(name)s "
    "request_id=%(request_id)s computation=%(computation)s %(message)s"
)


def _stamp(record: logging.LogRecord) -> logging.LogRecord:
    if not hasattr(record, "request_id"):
        record.request_id = request_id_var.get() or "-"
    if not hasattr(record, "computation"):
        record.computation = computation_var.get() or "-"
    return record


_base_factory = logging.getLogRecordFactory()


def _record_factory(*args, **kwargs):
    return _stamp(_base_factory(*args, **kwargs))


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        record.computation = computation_var.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with the request/computation context."""

    def format(self, record: logging.LogRecord) -> str:
        _stamp(record)
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            payload[field] = getattr(record, field)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


class TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return super().format(_stamp(record))


def setup_logging() -> None:
    """Configure the root logger once for API, CLI and tests alike.

    RUNSTATS_LOG_LEVEL picks the level, RUNSTATS_LOG_FORMAT=json switches to
    structured lines.
    """
    level = os.getenv("RUNSTATS_LOG_LEVEL", "INFO").upper()
    use_json = os.getenv("RUNSTATS_LOG_FORMAT", "text").lower() == "json"

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    # Same factory on every call, never a wrapper of the previous one
    logging.setLogRecordFactory(_record_factory)
    logging.basicConfig(level=level, format=TEXT_FORMAT)

    formatter = JSONFormatter() if use_json else TextFormatter(TEXT_FORMAT)
    for handler in root.handlers:
        handler.setFormatter(formatter)
        handler.addFilter(ContextFilter())

    # uvicorn logs every request on its own; ours carries the request id
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
