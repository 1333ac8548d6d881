"""
Logging configuration for the Word of the Day chat companion.

Sets up colored root logging with colorlog and provides structured error
logging backed by a small in-process error aggregator.
"""

import atexit
import logging
import os
import sys
import threading
import time
from collections import defaultdict
from typing import Any

import colorlog

_MAX_ERRORS_PER_TYPE = 500
_ALERT_RATE_PER_HOUR = 10.0


class WatchdogNoiseFilter(logging.Filter):
    """Drop the file-watcher backend's own chatter (fsevents/inotify)."""

    def filter(self, record):
        message = record.getMessage().lower()
        return "fsevents" not in message and "inotify" not in message


class ErrorAggregator:
    """Counts errors by type so repeated failures can be summarized.

    A chat outage tends to produce the same network error every reconnect
    cycle; the aggregator keeps those visible as a rate instead of a wall of
    identical lines.
    """

    def __init__(self):
        self.errors: dict[str, list[dict[str, Any]]] = defaultdict(list)
        self.lock = threading.Lock()
        self.start_time = time.time()

    def record_error(
        self, error_type: str, message: str, context: dict[str, Any] | None = None
    ) -> None:
        with self.lock:
            bucket = self.errors[error_type]
            bucket.append(
                {"timestamp": time.time(), "message": message, "context": context or {}}
            )
            if len(bucket) > _MAX_ERRORS_PER_TYPE:
                del bucket[: len(bucket) - _MAX_ERRORS_PER_TYPE]

    def get_error_summary(self) -> dict[str, Any]:
        with self.lock:
            now = time.time()
            runtime_hours = max((now - self.start_time) / 3600, 1)
            return {
                error_type: {
                    "total_count": len(entries),
                    "recent_count": sum(
                        1 for e in entries if now - e["timestamp"] < 3600
                    ),
                    "rate_per_hour": len(entries) / runtime_hours,
                    "last_occurrence": entries[-1] if entries else None,
                }
                for error_type, entries in self.errors.items()
            }

    def should_alert(
        self, error_type: str, threshold_rate: float = _ALERT_RATE_PER_HOUR
    ) -> bool:
        stats = self.get_error_summary().get(error_type)
        return bool(stats and stats["rate_per_hour"] > threshold_rate)

    def reset(self) -> None:
        with self.lock:
            self.errors.clear()
            self.start_time = time.time()

    def log_summary_report(self) -> None:
        summary = self.get_error_summary()
        if not summary:
            logging.info("No errors recorded in current session")
            return
        logging.warning("🚨 ERROR SUMMARY REPORT")
        for error_type, stats in summary.items():
            logging.warning(
                f"  {error_type}: {stats['total_count']} total, "
                f"{stats['recent_count']} in last hour, "
                f"{stats['rate_per_hour']:.1f}/hour"
            )
            if stats["last_occurrence"]:
                logging.warning(f"    Last: {stats['last_occurrence']['message']}")


error_aggregator = ErrorAggregator()


def log_structured_error(
    error_type: str,
    message: str,
    exception: Exception | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error with structured context and record it for aggregation.

    The emitted line has the shape
    ``[TYPE] message | Exception: Name: text | Context: k=v | k=v``.

    Args:
        error_type: Category of the error (e.g. 'network', 'auth', 'webhook').
        message: Descriptive error message.
        exception: The exception that occurred, if any.
        context: Additional context data for debugging.
        level: Logging level (default: ERROR).
    """
    structured_message = f"[{error_type.upper()}] {message}"
    if exception:
        structured_message += f" | Exception: {type(exception).__name__}: {exception}"
    if context:
        structured_message += " | Context: " + " | ".join(
            f"{k}={v}" for k, v in context.items()
        )
    logging.log(level, structured_message)

    error_aggregator.record_error(error_type, message, context)
    if error_aggregator.should_alert(error_type):
        rate = error_aggregator.get_error_summary()[error_type]["rate_per_hour"]
        logging.critical(f"🚨 HIGH ERROR RATE ALERT: {error_type} at {rate:.1f}/hour")


class LoggerConfigurator:
    """Configures root logging with colorlog.

    Level comes from the DEBUG environment variable ('true', '1' or 'yes'
    selects DEBUG, anything else INFO).
    """

    def __init__(self, config=None):
        self.config = config or {}

    def configure(self):
        debug_env = os.environ.get("DEBUG", "").lower()
        log_level = logging.DEBUG if debug_env in ("true", "1", "yes") else logging.INFO

        formatter = colorlog.ColoredFormatter(
            "%(asctime)s %(log_color)s%(levelname)-8s%(reset)s %(message_log_color)s%(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            log_colors={
                "DEBUG": "cyan",
                "INFO": "green",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "magenta",
            },
            secondary_log_colors={
                "message": {
                    "ERROR": "red",
                    "CRITICAL": "magenta",
                }
            },
            reset=True,
        )

        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(formatter)
        handler.addFilter(WatchdogNoiseFilter())

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(handler)
        root_logger.setLevel(log_level)

        # Library frame/request debug lines drown out chat traffic
        logging.getLogger("aiohttp").setLevel(logging.WARNING)
        logging.getLogger("websockets").setLevel(logging.WARNING)
        logging.getLogger("watchdog").setLevel(logging.INFO)

        if self.config.get("error_summary_at_exit", True):
            atexit.register(self._log_final_error_summary)

    def _log_final_error_summary(self):
        try:
            logging.info("📊 Final error summary before shutdown:")
            error_aggregator.log_summary_report()
        except (OSError, ValueError) as e:
            logging.error(f"Failed to log final error summary: {e}")
