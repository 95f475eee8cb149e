"""
Logging setup for the leaderboard service.

Two output formats:
- ``json``: one JSON object per line for log aggregation
- ``text``: human-readable lines for local development

Services attach context through ``extra=`` (game_id, player_id, duel_id,
game_type); both formatters surface those fields.
"""

import json
import logging
import sys
from datetime import datetime, timezone

CONTEXT_FIELDS = ("game_id", "player_id", "guest_id", "duel_id", "game_type", "period")


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_data[field] = value

        if record.levelno >= logging.ERROR:
            log_data["source"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class DevelopmentFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.now().strftime("%H:%M:%S")
        ctx = [
            f"{field}={getattr(record, field)}"
            for field in CONTEXT_FIELDS
            if getattr(record, field, None) is not None
        ]
        ctx_str = f" [{' '.join(ctx)}]" if ctx else ""
        line = f"{timestamp} {record.levelname:<8} {record.name}{ctx_str}: {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: str = "INFO", fmt: str = "text") -> None:
    """
    Configure the root logger once per process.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR).
        fmt: ``json`` or ``text``.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter() if fmt == "json" else DevelopmentFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # SQL echo is too chatty for request logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
