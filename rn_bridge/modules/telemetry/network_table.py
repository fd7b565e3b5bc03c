"""
Network request table.

Records are keyed by protocol request id. A parallel insertion-order queue
drives eviction: once capacity is exceeded the oldest request id goes,
whether or not that request has completed.
"""

import logging
import threading
from collections import deque
from typing import Deque, Dict, Any, List, Optional
from urllib.parse import urlsplit

from rn_bridge.models import NetworkRecord

logger = logging.getLogger(__name__)

DEFAULT_NETWORK_CAPACITY = 500

# Fields later events may change on an existing record
MUTABLE_FIELDS = frozenset({
    "url", "method", "headers", "post_data",
    "status", "status_text", "response_headers", "mime_type",
    "content_length", "duration_ms", "error", "completed",
})


class NetworkTable:
    """Fixed-capacity table of NetworkRecords with insertion-order eviction."""

    def __init__(self, capacity: int = DEFAULT_NETWORK_CAPACITY):
        if capacity <= 0:
            raise ValueError(f"Network table capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._records: Dict[str, NetworkRecord] = {}
        self._order: Deque[str] = deque()
        self._lock = threading.RLock()

    @property
    def size(self) -> int:
        with self._lock:
            return len(self._records)

    def __len__(self) -> int:
        return self.size

    def __contains__(self, request_id: str) -> bool:
        with self._lock:
            return request_id in self._records

    # --- Mutations ---

    def add(self, record: NetworkRecord) -> None:
        """Insert a record. A known id is replaced in place and keeps its position."""
        with self._lock:
            if record.request_id in self._records:
                self._records[record.request_id] = record
                return
            self._records[record.request_id] = record
            self._order.append(record.request_id)
            while len(self._order) > self.capacity:
                oldest = self._order.popleft()
                self._records.pop(oldest, None)
                logger.debug(f"Evicted network record {oldest}")

    def update(self, request_id: str, **fields: Any) -> bool:
        """
        Apply field changes to one record atomically.

        Returns:
            False (and changes nothing) when the request id is unknown
        """
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise TypeError(f"Not updatable on a network record: {sorted(unknown)}")

        with self._lock:
            record = self._records.get(request_id)
            if record is None:
                return False
            for name, value in fields.items():
                if name == "completed":
                    # completed never goes back to False
                    record.completed = record.completed or bool(value)
                    continue
                setattr(record, name, value)
            return True

    def clear(self) -> int:
        """Remove every record. Returns how many were removed."""
        with self._lock:
            count = len(self._records)
            self._records.clear()
            self._order.clear()
        logger.debug(f"Cleared {count} network records")
        return count

    # --- Queries ---

    def get(self, request_id: str) -> Optional[NetworkRecord]:
        with self._lock:
            record = self._records.get(request_id)
            return record.copy() if record is not None else None

    def all(self) -> List[NetworkRecord]:
        with self._lock:
            return [self._records[request_id].copy() for request_id in self._order]

    def list(self,
             count: Optional[int] = None,
             method: Optional[str] = None,
             url_pattern: Optional[str] = None,
             status: Optional[int] = None,
             completed_only: bool = False) -> List[NetworkRecord]:
        """
        Filtered listing in insertion order.

        Args:
            count: Keep only the most recent N matches (None or <= 0 means all)
            method: HTTP method, case-insensitive
            url_pattern: Case-insensitive URL substring
            status: Exact response status code
            completed_only: Only requests that finished or failed
        """
        results = self.all()

        if method and method.strip():
            wanted = method.strip().upper()
            results = [r for r in results if r.method.upper() == wanted]

        if url_pattern and url_pattern.strip():
            pattern = url_pattern.lower()
            results = [r for r in results if pattern in r.url.lower()]

        if status is not None:
            results = [r for r in results if r.status == status]

        if completed_only:
            results = [r for r in results if r.completed]

        if count is not None and count > 0:
            results = results[-count:]
        return results

    def search(self, url_pattern: str, max_results: int = 50) -> List[NetworkRecord]:
        """Case-insensitive URL substring search; the most recent matches win."""
        pattern = url_pattern.lower()
        results = [r for r in self.all() if pattern in r.url.lower()]
        if max_results > 0:
            return results[-max_results:]
        return results

    def stats(self) -> Dict[str, Any]:
        """Aggregate view: counts by method, status class and hostname, average duration, errors."""
        records = self.all()

        by_method: Dict[str, int] = {}
        by_status: Dict[str, int] = {}
        by_domain: Dict[str, int] = {}
        durations: List[float] = []
        completed_count = 0
        error_count = 0

        for record in records:
            by_method[record.method] = by_method.get(record.method, 0) + 1

            if record.status is not None:
                status_class = f"{record.status // 100}xx"
                by_status[status_class] = by_status.get(status_class, 0) + 1

            try:
                hostname = urlsplit(record.url).hostname
            except ValueError:
                hostname = None
            if hostname:
                by_domain[hostname] = by_domain.get(hostname, 0) + 1

            if record.completed:
                completed_count += 1
                if record.duration_ms is not None:
                    durations.append(record.duration_ms)

            if record.error:
                error_count += 1

        return {
            "total": len(records),
            "completed": completed_count,
            "errors": error_count,
            "avg_duration_ms": round(sum(durations) / len(durations), 1) if durations else None,
            "by_method": _sorted_counts(by_method),
            "by_status": dict(sorted(by_status.items())),
            "by_domain": _sorted_counts(by_domain),
        }


def _sorted_counts(counts: Dict[str, int]) -> Dict[str, int]:
    return dict(sorted(counts.items(), key=lambda item: item[1], reverse=True))
