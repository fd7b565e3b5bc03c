"""
Console log ring buffer.

Fixed capacity; appending to a full buffer evicts the oldest record.
Guarded by a lock so readers on other threads never see a half-applied
append or clear.
"""

import logging
import threading
from collections import deque
from typing import Deque, Dict, Any, List, Optional

from rn_bridge.models import LogRecord

logger = logging.getLogger(__name__)

DEFAULT_LOG_CAPACITY = 1000


def map_console_type(console_type: Optional[str]) -> str:
    """Map a console API call type or Log entry level onto a LogRecord level."""
    if console_type in ("error", "assert"):
        return "error"
    if console_type in ("warning", "warn"):
        return "warn"
    if console_type == "info":
        return "info"
    if console_type in ("debug", "verbose"):
        return "debug"
    return "log"


class LogBuffer:
    """Fixed-capacity FIFO of LogRecords."""

    def __init__(self, capacity: int = DEFAULT_LOG_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Log buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: Deque[LogRecord] = deque(maxlen=capacity)
        self._lock = threading.RLock()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def __len__(self) -> int:
        return self.size

    def append(self, record: LogRecord) -> None:
        with self._lock:
            self._records.append(record)

    def all(self) -> List[LogRecord]:
        with self._lock:
            return list(self._records)

    def get(self,
            count: Optional[int] = None,
            level: Optional[str] = None,
            start_from_text: Optional[str] = None,
            newest_first: bool = False) -> List[LogRecord]:
        """
        Bounded retrieval.

        Args:
            count: Maximum records returned (None or <= 0 means no cap). Without
                start_from_text the most recent records are kept, with it the
                first records after the marker
            level: Only records of this level ("all" or None means any)
            start_from_text: Start at the most recent record containing this
                text; no match returns an empty list
            newest_first: Return the newest records first instead of original order

        Returns:
            Matching records in original order unless newest_first is set
        """
        records = self.all()

        if start_from_text:
            start_index = -1
            for i in range(len(records) - 1, -1, -1):
                if start_from_text in records[i].message:
                    start_index = i
                    break
            if start_index == -1:
                return []
            records = records[start_index:]

        if level and level != "all":
            records = [r for r in records if r.level == level]

        if count is not None and count > 0:
            # Marker mode keeps the entries right after the match
            records = records[:count] if start_from_text else records[-count:]

        if newest_first:
            records.reverse()
        return records

    def search(self, text: str, max_results: Optional[int] = None) -> List[LogRecord]:
        """Case-insensitive substring search, in original order."""
        needle = text.lower()
        results = [r for r in self.all() if needle in r.message.lower()]
        if max_results is not None and max_results > 0:
            return results[:max_results]
        return results

    def clear(self) -> int:
        """Remove every record. Returns how many were removed."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
        logger.debug(f"Cleared {count} log records")
        return count

    def summary(self, last_n: int = 5) -> Dict[str, Any]:
        """Total count, counts by level and the last N records."""
        records = self.all()
        by_level: Dict[str, int] = {}
        for record in records:
            by_level[record.level] = by_level.get(record.level, 0) + 1
        return {
            "total": len(records),
            "by_level": dict(sorted(by_level.items(), key=lambda item: item[1], reverse=True)),
            "recent": records[-last_n:] if last_n > 0 else [],
        }
