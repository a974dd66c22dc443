from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

from app.schemas.stock import RecordTier


@dataclass
class ServiceMetrics:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    latency_total_ms: float = 0.0

    def avg_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.latency_total_ms / self.total_requests


class MetricsCollector:
    def __init__(self):
        self._per_service: dict[str, ServiceMetrics] = {}
        self._tiers: dict[str, int] = {tier.value: 0 for tier in RecordTier}
        self._lock = Lock()

    def _get(self, service: str) -> ServiceMetrics:
        if service not in self._per_service:
            self._per_service[service] = ServiceMetrics()
        return self._per_service[service]

    def record_call(self, service: str, success: bool, latency_ms: float):
        with self._lock:
            m = self._get(service)
            m.total_requests += 1
            m.latency_total_ms += max(latency_ms, 0.0)
            if success:
                m.successful_requests += 1
            else:
                m.failed_requests += 1

    def record_tier(self, tier: RecordTier):
        with self._lock:
            self._tiers[tier.value] += 1

    def service_status(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            out: dict[str, dict[str, float | int]] = {}
            for service, m in self._per_service.items():
                failure_rate = 0.0 if m.total_requests == 0 else (m.failed_requests / m.total_requests)
                out[service] = {
                    "total_requests": m.total_requests,
                    "successful_requests": m.successful_requests,
                    "failed_requests": m.failed_requests,
                    "failure_rate": round(failure_rate, 4),
                    "average_latency_ms": round(m.avg_latency_ms(), 3),
                }
            return out

    def tier_counts(self) -> dict[str, int]:
        with self._lock:
            return dict(self._tiers)

    def global_metrics(self) -> dict[str, float | int | dict]:
        per = self.service_status()
        tiers = self.tier_counts()
        total_requests = sum(v["total_requests"] for v in per.values())
        weighted_latency = sum((v["average_latency_ms"] * v["total_requests"]) for v in per.values())
        average_latency = 0.0 if total_requests == 0 else (weighted_latency / total_requests)
        total_records = sum(tiers.values())
        synthetic_rate = 0.0 if total_records == 0 else (tiers[RecordTier.SYNTHETIC.value] / total_records)
        return {
            "upstream_request_count": total_requests,
            "average_latency_ms": round(average_latency, 3),
            "records_by_tier": tiers,
            "synthetic_rate": round(synthetic_rate, 4),
            "per_service": per,
        }
