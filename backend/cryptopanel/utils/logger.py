import json
import logging
import sys
from datetime import datetime, timezone

# ---------------------------------------------------
# Create a custom logger
# ---------------------------------------------------
log = logging.getLogger("CryptoPanel")
log.setLevel(logging.INFO)

# Fields callers may attach through `extra=` (python name -> JSON key)
STRUCTURED_FIELDS = {
    "endpoint": "endpoint",
    "request_id": "requestId",
    "status_code": "statusCode",
    "duration": "duration",
    "error": "error",
    "context": "context",
}


# ---------------------------------------------------
# Formatting
# ---------------------------------------------------
class StructuredFormatter(logging.Formatter):
    """Render each record as a single JSON line for log drains."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "level": record.levelname.lower(),
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat(timespec="milliseconds")
            .replace("+00:00", "Z"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr, key in STRUCTURED_FIELDS.items():
            value = getattr(record, attr, None)
            if value is not None:
                entry[key] = value
        if record.exc_info:
            entry["stack"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


# ---------------------------------------------------
# Console Handler
# ---------------------------------------------------
console_handler = logging.StreamHandler(sys.stdout)
console_handler.setFormatter(StructuredFormatter())
log.addHandler(console_handler)

# ---------------------------------------------------
# Disable logging propagation
# ---------------------------------------------------
log.propagate = False


def configure_logging(level: str = "INFO"):
    """Apply the configured level to the application logger."""
    log.setLevel(level.upper())
