"""
Table entity built from a log record.

Each entity is stored as one row:
    PartitionKey  logger name
    RowKey        reverse-chronological timestamp + random suffix
    Message       rendered layout
    Level, LoggerName, Timestamp, Exception
    <extra>       every non-standard record attribute (from `extra=`)

Row keys sort newest-first inside a partition.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Microseconds since the epoch are subtracted from this to build row keys.
_ROW_KEY_CEILING = 10 ** 19 - 1

_STANDARD_ATTRIBUTES = frozenset(logging.makeLogRecord({}).__dict__) | {"message", "asctime"}

_exception_formatter = logging.Formatter()


def structured_fields(record: logging.LogRecord) -> Dict[str, Any]:
    """Return the attributes a caller attached to the record via `extra=`."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRIBUTES and not key.startswith("_")
    }


def make_row_key(created: float) -> str:
    """Row key that sorts newer records before older ones."""
    micros = int(created * 1_000_000)
    return f"{_ROW_KEY_CEILING - micros:019d}-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class LogEntity:
    """A log record prepared for storage."""
    partition_key: str
    row_key: str
    message: str
    level: str
    logger_name: str
    timestamp: str
    exception: Optional[str] = None
    fields: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_record(cls, record: logging.LogRecord, message: str) -> "LogEntity":
        """
        Build an entity from a record.

        Args:
            record: Source log record (not modified)
            message: Message body, already rendered with the sink's layout
        """
        exception = record.exc_text
        if record.exc_info and not exception:
            exception = _exception_formatter.formatException(record.exc_info)

        return cls(
            partition_key=record.name,
            row_key=make_row_key(record.created),
            message=message,
            level=record.levelname,
            logger_name=record.name,
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            exception=exception,
            fields=structured_fields(record),
        )

    def to_item(self) -> Dict[str, Any]:
        """Flatten to the column mapping written by storage clients."""
        item = dict(self.fields)
        item.update({
            "PartitionKey": self.partition_key,
            "RowKey": self.row_key,
            "Message": self.message,
            "Level": self.level,
            "LoggerName": self.logger_name,
            "Timestamp": self.timestamp,
        })
        if self.exception:
            item["Exception"] = self.exception
        return item
