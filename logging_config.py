"""
Structured logging configuration for the Yewa storefront.
Import and call setup_logging() once at app startup.

Records logged while a request is being served are stamped with its route
and method, so shop, checkout and tender lines can be traced back to the
endpoint that produced them. Order and tender ids passed via extra={} show
up in both formats.
"""
import logging
import logging.handlers
import os
import json
from datetime import datetime, timezone

from flask import has_request_context, request

from yewa.core.paths import LOG_DIR

# Extra fields copied onto JSON lines when a log call passes them via extra={}
EXTRA_FIELDS = ("route", "method", "status", "duration_ms", "order_id",
                "payment_id", "ocid", "user", "upstream", "count")

# Ids worth seeing on the console too
HUMAN_CONTEXT_FIELDS = ("order_id", "payment_id", "ocid")

LOG_FILE = "yewa.log"


class RequestContextFilter(logging.Filter):
    """Fill in route/method from the current Flask request when not given."""

    def filter(self, record):
        if has_request_context():
            if not hasattr(record, "route"):
                record.route = request.path
            if not hasattr(record, "method"):
                record.method = request.method
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for the rotating file and production console."""
    def format(self, record):
        entry = {
            "ts": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class HumanFormatter(logging.Formatter):
    """Colored console lines, with order/payment/tender ids appended."""
    COLORS = {
        "DEBUG": "\033[36m", "INFO": "\033[32m",
        "WARNING": "\033[33m", "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record):
        color = self.COLORS.get(record.levelname, "")
        ts = datetime.now().strftime("%H:%M:%S")
        line = f"{color}{ts} [{record.levelname[0]}] {record.name}: {record.getMessage()}"
        context = [f"{k}={getattr(record, k)}" for k in HUMAN_CONTEXT_FIELDS
                   if getattr(record, k, None)]
        if context:
            line += f" ({', '.join(context)})"
        line += self.RESET
        if record.exc_info and record.exc_info[0]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level=None, json_logs=None):
    """
    Configure logging for the storefront.

    Args:
        level: Override log level (default: from LOG_LEVEL env or INFO)
        json_logs: Force JSON format (default: True when YEWA_ENV=production)
    """
    if level is None:
        level = os.environ.get("LOG_LEVEL", "INFO").upper()
    if json_logs is None:
        json_logs = os.environ.get("YEWA_ENV", "").lower() == "production"

    root = logging.getLogger()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.handlers.clear()
    request_filter = RequestContextFilter()

    console = logging.StreamHandler()
    console.setFormatter(JSONFormatter() if json_logs else HumanFormatter())
    console.addFilter(request_filter)
    root.addHandler(console)

    # Rotates at 5MB, keeps 5 backups
    try:
        os.makedirs(LOG_DIR, exist_ok=True)
        fh = logging.handlers.RotatingFileHandler(
            os.path.join(LOG_DIR, LOG_FILE), maxBytes=5_000_000, backupCount=5,
        )
        fh.setFormatter(JSONFormatter())
        fh.addFilter(request_filter)
        root.addHandler(fh)
    except OSError:
        root.warning("File logging disabled: %s not writable", LOG_DIR)

    # urllib3 logs every upstream tender/PDF connection at INFO
    for name in ("urllib3", "werkzeug"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("yewa").info("Logging initialized", extra={"route": "startup"})
