"""
Logging utilities for structured logging
"""

import logging
import json
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

_RESERVED_ATTRS = frozenset((
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName'
))


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        # Extra fields passed through `extra=`
        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, ensure_ascii=False, default=str)


class MorningAlarmFilter(logging.Filter):
    """Lifts asset and phase context into nested fields"""

    def filter(self, record: logging.LogRecord) -> bool:
        if hasattr(record, 'asset_kind'):
            record.asset_context = {
                "asset_kind": record.asset_kind
            }

        if hasattr(record, 'phase'):
            record.phase_context = {
                "phase": record.phase
            }

        return True


def setup_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Route all records to stdout, either as JSON lines or as plain text.

    Args:
        log_level: Root logging level name
        log_format: "json" for structured records, anything else for text
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    if log_format.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter('%(asctime)s %(levelname)-7s %(name)s: %(message)s', datefmt='%H:%M:%S')

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(MorningAlarmFilter())
    root_logger.addHandler(handler)

    logging.getLogger('apscheduler').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def log_phase_start(logger: logging.Logger, phase: str, **kwargs) -> None:
    """
    Log the start of an orchestration phase.

    Args:
        logger: Logger instance
        phase: Phase name
        **kwargs: Additional context
    """
    logger.info(
        f"Starting phase: {phase}",
        extra={
            "phase": phase,
            "phase_action": "start",
            **kwargs
        }
    )


def log_phase_end(logger: logging.Logger, phase: str,
                  duration_ms: Optional[int] = None, success: bool = True,
                  **kwargs) -> None:
    """
    Log the end of an orchestration phase.

    Args:
        logger: Logger instance
        phase: Phase name
        duration_ms: Phase duration in milliseconds
        success: Whether phase was successful
        **kwargs: Additional context
    """
    logger.info(
        f"Completed phase: {phase} (success: {success})",
        extra={
            "phase": phase,
            "phase_action": "end",
            "duration_ms": duration_ms,
            "success": success,
            **kwargs
        }
    )


def log_state_change(logger: logging.Logger, old_state: str, new_state: str, **kwargs) -> None:
    """
    Log scheduling state changes.

    Args:
        logger: Logger instance
        old_state: Previous state
        new_state: New state
        **kwargs: Additional context
    """
    logger.info(
        f"Scheduling state change: {old_state} -> {new_state}",
        extra={
            "event_type": "state_change",
            "old_state": old_state,
            "new_state": new_state,
            **kwargs
        }
    )


def log_error(logger: logging.Logger, subject: str, error: Exception,
              context: Optional[Dict[str, Any]] = None) -> None:
    """
    Log errors with context.

    Args:
        logger: Logger instance
        subject: What failed (asset kind, phase, component)
        error: Exception that occurred
        context: Additional context
    """
    logger.error(
        f"Error occurred in {subject}: {error}",
        extra={
            "subject": subject,
            "event_type": "error",
            "error_type": type(error).__name__,
            "error_message": str(error),
            "context": context or {}
        },
        exc_info=error
    )
