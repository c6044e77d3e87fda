"""In-process metrics counters and histograms."""

import threading
import time
from collections import defaultdict
from typing import Any

from backend.core.config import settings

# Global metrics storage
_metrics = defaultdict(lambda: {"count": 0, "sum": 0.0, "values": [], "buckets": defaultdict(int)})
# validate_batch records from worker threads
_lock = threading.Lock()


def _key(name: str, labels: dict[str, str] | None) -> str:
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={v}" for k, v in sorted(labels.items())) + "}"


def init_metrics() -> None:
    """Initialize metrics if enabled."""
    if not settings.enable_metrics:
        return
    reset_metrics()


def increment_counter(name: str, labels: dict[str, str] | None = None, value: float = 1.0) -> None:
    """Increment a counter metric."""
    if not settings.enable_metrics:
        return
    with _lock:
        _metrics[_key(name, labels)]["count"] += value


def record_histogram(name: str, value: float, labels: dict[str, str] | None = None) -> None:
    """Record a histogram measurement."""
    if not settings.enable_metrics:
        return

    with _lock:
        metrics = _metrics[_key(name, labels)]
        metrics["count"] += 1
        metrics["sum"] += value
        metrics["values"].append(value)

        if value < 0.1:
            metrics["buckets"]["<0.1"] += 1
        elif value < 1:
            metrics["buckets"]["0.1-1.0"] += 1
        elif value < 10:
            metrics["buckets"]["1.0-10.0"] += 1
        elif value < 100:
            metrics["buckets"]["10.0-100.0"] += 1
        elif value < 1000:
            metrics["buckets"]["100.0-1000.0"] += 1
        else:
            metrics["buckets"][">=1000.0"] += 1


def observe_duration(start_time: float, name: str, labels: dict[str, str] | None = None) -> None:
    """Observe a duration measurement (start_time from time.perf_counter())."""
    duration_ms = (time.perf_counter() - start_time) * 1000
    record_histogram(name, duration_ms, labels)


def get_metrics() -> dict[str, Any]:
    """Get current metrics snapshot."""
    if not settings.enable_metrics:
        return {"note": "metrics disabled"}

    result = {}
    with _lock:
        for key, data in _metrics.items():
            metric_result = {"count": data["count"], "sum": data["sum"]}
            if data["values"]:
                values = data["values"]
                metric_result.update(
                    {
                        "min": min(values),
                        "max": max(values),
                        "avg": data["sum"] / len(values),
                        "buckets": dict(data["buckets"]),
                    }
                )
            result[key] = metric_result
    return result


def reset_metrics() -> None:
    """Reset all metrics (useful for testing)."""
    with _lock:
        _metrics.clear()


# Compliance core metrics
def increment_validations(format_name: str, valid: bool) -> None:
    increment_counter(
        "compliance_validations_total",
        {"format": format_name, "outcome": "valid" if valid else "invalid"},
    )


def record_validation_duration(start_time: float, format_name: str) -> None:
    observe_duration(start_time, "compliance_validation_duration_ms", {"format": format_name})


def increment_detections(format_name: str | None) -> None:
    increment_counter("compliance_detections_total", {"format": format_name or "unknown"})


def increment_signatures(success: bool) -> None:
    increment_counter(
        "compliance_signatures_total",
        {"outcome": "success" if success else "failure"},
    )


def record_signing_duration(start_time: float) -> None:
    observe_duration(start_time, "compliance_signing_duration_ms")


def increment_verifications(reason: str) -> None:
    increment_counter("compliance_verifications_total", {"reason": reason})
