"""Routing traces, latency accounting and per-path summaries."""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from droplet_router.types import RoutePath, RoutingDecision


@dataclass(slots=True)
class RouteTrace:
    trace_id: str
    timestamp_utc: str
    path: RoutePath
    bucket_id: str
    bucket_name: str
    topic: str
    confidence: float
    is_new_bucket: bool
    latency_ms: float


class TraceStore:
    """In-memory record of routing decisions for host-side observability.

    Only the most recent `max_records` traces are kept; counters in
    `summary()` cover every decision seen since construction.
    """

    def __init__(self, max_records: int = 500) -> None:
        if max_records < 1:
            raise ValueError("max_records must be positive")
        self.max_records = max_records
        self._records: dict[str, RouteTrace] = {}
        self._path_counts: dict[RoutePath, int] = {path: 0 for path in RoutePath}
        self._total_latency_ms = 0.0

    def record(self, decision: RoutingDecision, latency_ms: float) -> RouteTrace:
        trace = RouteTrace(
            trace_id=str(uuid.uuid4()),
            timestamp_utc=datetime.now(timezone.utc).isoformat(),
            path=decision.path,
            bucket_id=decision.target_bucket_id,
            bucket_name=decision.bucket.name,
            topic=decision.classification.topic,
            confidence=decision.classification.confidence,
            is_new_bucket=decision.is_new_bucket,
            latency_ms=latency_ms,
        )
        self._records[trace.trace_id] = trace
        if len(self._records) > self.max_records:
            del self._records[next(iter(self._records))]
        self._path_counts[decision.path] += 1
        self._total_latency_ms += latency_ms
        return trace

    def get(self, trace_id: str) -> RouteTrace:
        trace = self._records.get(trace_id)
        if trace is None:
            raise KeyError(f"Trace not found: {trace_id}")
        return trace

    def list_recent(self, limit: int = 20) -> list[RouteTrace]:
        return list(self._records.values())[-limit:]

    def summary(self) -> dict[str, float | int]:
        """Aggregate routing counts and latency for dashboard display."""
        total = sum(self._path_counts.values())
        latencies = sorted(trace.latency_ms for trace in self._records.values())
        p95_index = max(0, int((len(latencies) * 0.95) - 1))
        summary: dict[str, float | int] = {
            "total_routed": total,
            "avg_latency_ms": self._total_latency_ms / total if total else 0.0,
            "p95_latency_ms": latencies[p95_index] if latencies else 0.0,
        }
        for path, count in self._path_counts.items():
            summary[f"{path.value}_count"] = count
        return summary


class Timer:
    """Simple context timer used by the classifier and routing engine."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0
