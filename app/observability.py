"""Runtime status for the gateway: uptime, inbound latency, and the latest batch."""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock
from typing import Iterable, Optional

from app.schemas.stock import RecordTier, StockRecord


@dataclass
class BatchSnapshot:
    completed_at: datetime
    size: int
    duration_ms: float
    tiers: dict[str, int] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return self.tiers.get(RecordTier.SYNTHETIC.value, 0) > 0

    def as_dict(self) -> dict:
        return {
            "completed_at": self.completed_at.isoformat(),
            "size": self.size,
            "duration_ms": round(self.duration_ms, 3),
            "tiers": dict(self.tiers),
            "degraded": self.degraded,
        }


class RuntimeObservability:
    def __init__(self):
        self.process_started_at = datetime.now(timezone.utc)
        self.last_batch: Optional[BatchSnapshot] = None
        self._batch_count = 0
        self._request_count = 0
        self._request_total_ms = 0.0
        self._request_max_ms = 0.0
        self._lock = Lock()

    def mark_batch_complete(self, records: Iterable[StockRecord], duration_ms: float, timestamp: Optional[datetime] = None):
        """Record the size and tier mix of a finished /api/stocks batch."""
        records = list(records)
        tiers = Counter(r.data_source.value for r in records)
        snapshot = BatchSnapshot(
            completed_at=(timestamp or datetime.now(timezone.utc)).astimezone(timezone.utc),
            size=len(records),
            duration_ms=max(duration_ms, 0.0),
            tiers={tier.value: tiers.get(tier.value, 0) for tier in RecordTier},
        )
        with self._lock:
            self.last_batch = snapshot
            self._batch_count += 1

    def seconds_since_last_batch(self) -> Optional[float]:
        if self.last_batch is None:
            return None
        delta = datetime.now(timezone.utc) - self.last_batch.completed_at
        return max(delta.total_seconds(), 0.0)

    def record_request(self, elapsed_ms: float):
        with self._lock:
            self._request_count += 1
            self._request_total_ms += elapsed_ms
            self._request_max_ms = max(self._request_max_ms, elapsed_ms)

    def status(self) -> dict:
        with self._lock:
            average = 0.0 if self._request_count == 0 else self._request_total_ms / self._request_count
            last_batch = self.last_batch.as_dict() if self.last_batch else None
            return {
                "uptime_seconds": round(self.uptime_seconds(), 3),
                "inbound_requests": self._request_count,
                "inbound_average_ms": round(average, 3),
                "inbound_max_ms": round(self._request_max_ms, 3),
                "batch_count": self._batch_count,
                "last_batch": last_batch,
            }

    def uptime_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.process_started_at).total_seconds()


observability = RuntimeObservability()
