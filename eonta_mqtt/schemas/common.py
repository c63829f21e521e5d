"""
Common Schema Types
==================

Bounded Context: Shared Data Structures

Types shared by every EONTA wire message.

Design Principles:
- Immutability: frozen=True prevents accidental mutation
- Serialization: to_dict() for JSON export, from_dict() raises ValueError
- Validation: Constructor validates invariants

Types:
- Timestamp: ISO 8601 timestamp wrapper
"""

from dataclasses import dataclass
from datetime import datetime, timezone


SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class Timestamp:
    """
    Immutable ISO 8601 timestamp wrapper.

    Attributes:
        value: ISO 8601 formatted timestamp string

    Example:
        >>> ts = Timestamp.now()
        >>> ts.value
        '2026-10-19T15:30:45.123456+00:00'
    """
    value: str

    def __post_init__(self):
        """Validate invariants."""
        if not isinstance(self.value, str) or not self.value:
            raise ValueError(f"Timestamp must be a non-empty ISO string, got {self.value!r}")

    @classmethod
    def now(cls) -> 'Timestamp':
        """Create timestamp from current UTC time."""
        return cls(value=datetime.now(timezone.utc).isoformat())

    @classmethod
    def from_datetime(cls, dt: datetime) -> 'Timestamp':
        """Create timestamp from datetime object."""
        return cls(value=dt.isoformat())

    @classmethod
    def from_epoch_ms(cls, epoch_ms: float) -> 'Timestamp':
        """Create timestamp from Unix epoch milliseconds."""
        return cls(value=datetime.fromtimestamp(epoch_ms / 1000.0, tz=timezone.utc).isoformat())

    def to_datetime(self) -> datetime:
        """Parse to datetime object.

        Raises:
            ValueError: If timestamp format invalid
        """
        try:
            return datetime.fromisoformat(self.value)
        except ValueError as e:
            raise ValueError(f"Invalid ISO timestamp: {self.value}") from e

    def to_dict(self) -> str:
        """Serialize to JSON (as string)."""
        return self.value
