"""
Structured JSON Logger
=====================

Bounded Context: Observability Infrastructure

Structured logger that emits one JSON object per log line.

Design:
- JSON output (compatible with log aggregators)
- Thread-safe (uses standard logging module)
- Contextual metadata (region_id, composition_id, etc.)
- Type-safe events (LogEvent enum)

Example:
    >>> logger = StructuredLogger(component="transition")
    >>> logger.info(
    ...     event=LogEvent.REGION_ENTERED,
    ...     message="Entered region",
    ...     metadata={'region_id': 'fountain', 'progress': 0.2}
    ... )

Output:
    {
        "timestamp": "2026-10-19T15:30:45.123456+00:00",
        "level": "INFO",
        "component": "transition",
        "event": "transition.region.entered",
        "message": "Entered region",
        "metadata": {"region_id": "fountain", "progress": 0.2}
    }
"""

import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from .events import LogEvent


class StructuredLogger:
    """
    JSON structured logger for production observability.

    Wraps Python's logging module with structured metadata support.

    Attributes:
        component: Component name (e.g., "transition", "capture")
        logger: Underlying Python logger instance

    Thread Safety:
        Thread-safe via Python's logging module.
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None
    ):
        """
        Initialize structured logger.

        Args:
            component: Component identifier (e.g., "capture")
            level: Logging level (default: INFO)
            logger_name: Custom logger name (default: eonta.<component>)
        """
        self.component = component
        self.logger_name = logger_name or f"eonta.{component}"
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        # Configure JSON formatter if not already configured
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)

    def _log(
        self,
        level: str,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Internal log method with structured format.

        Args:
            level: Log level (DEBUG, INFO, WARNING, ERROR)
            event: Typed log event
            message: Human-readable message
            metadata: Additional context (region_id, composition_id, etc.)
            exc_info: Exception for ERROR logs
        """
        log_level = getattr(logging, level)
        if not self.logger.isEnabledFor(log_level):
            return

        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': level,
            'component': self.component,
            'event': event.value,
            'message': message,
        }

        if metadata:
            log_entry['metadata'] = metadata

        if exc_info:
            log_entry['exception'] = {
                'type': type(exc_info).__name__,
                'message': str(exc_info)
            }

        # default=str keeps enums, GeoPoints and numpy scalars loggable
        self.logger.log(
            log_level,
            json.dumps(log_entry, default=str),
            exc_info=exc_info if level == 'ERROR' else None
        )

    def debug(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """Log DEBUG level message (per-tick noise: filtered fixes, debounced updates)."""
        self._log('DEBUG', event, message, metadata)

    def info(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log INFO level message.

        Args:
            event: Typed log event
            message: Human-readable message
            metadata: Additional context

        Example:
            >>> logger.info(
            ...     event=LogEvent.RECORDING_STARTED,
            ...     message="Recording started",
            ...     metadata={'composition_id': 'walk-42'}
            ... )
        """
        self._log('INFO', event, message, metadata)

    def warning(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Log WARNING level message.

        Args:
            event: Typed log event
            message: Human-readable message
            metadata: Additional context
        """
        self._log('WARNING', event, message, metadata)

    def error(
        self,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]] = None,
        exc_info: Optional[BaseException] = None
    ) -> None:
        """
        Log ERROR level message.

        Args:
            event: Typed log event
            message: Human-readable message
            metadata: Additional context
            exc_info: Exception instance for traceback

        Example:
            >>> try:
            ...     sink.play_audio(region_id, url, options)
            ... except RuntimeError as e:
            ...     logger.error(
            ...         event=LogEvent.AUDIO_SINK_ERROR,
            ...         message="Audio sink failed",
            ...         exc_info=e,
            ...         metadata={'region_id': region_id}
            ...     )
        """
        self._log('ERROR', event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        """Change logging level dynamically."""
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """
    Formatter used by StructuredLogger.

    The message is already a JSON document, so it is passed through.
    """

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(
    component: str,
    level: int = logging.INFO
) -> StructuredLogger:
    """
    Factory function to create configured StructuredLogger.

    Args:
        component: Component identifier
        level: Logging level (default: INFO)

    Returns:
        Configured StructuredLogger instance

    Example:
        >>> logger = create_logger("capture", level=logging.DEBUG)
    """
    return StructuredLogger(component=component, level=level)
