"""
Structured Logging for EONTA
============================

Bounded Context: Observability

JSON-structured logging shared by every EONTA package.

Public API
----------
    LogEvent: Typed event names (enum)
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from eonta_mqtt.logging import create_logger, LogEvent
    >>> logger = create_logger("capture")
    >>> logger.info(
    ...     event=LogEvent.POSITION_CAPTURED,
    ...     message="Captured position",
    ...     metadata={'points': 12}
    ... )
"""

from .events import LogEvent
from .structured import JSONFormatter, StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'JSONFormatter',
    'StructuredLogger',
    'create_logger',
]
