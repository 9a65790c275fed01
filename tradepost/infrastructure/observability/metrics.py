"""In-process market metrics.

Counters and histograms live in memory and are exported through the
``/metrics`` endpoint in Prometheus text format, or as a JSON summary for
the CLI.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Mapping

LabelKey = tuple[tuple[str, str], ...]
Labels = Mapping[str, object]

DEFAULT_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)


def _key(labels: Labels | None) -> LabelKey:
    return tuple(sorted((name, str(value)) for name, value in (labels or {}).items()))


def _render(key: LabelKey, *extra: tuple[str, str]) -> str:
    """Prometheus label block, e.g. ``{method="GET",le="0.1"}``; empty without labels."""
    pairs = [*key, *extra]
    if not pairs:
        return ""
    return "{" + ",".join(f'{name}="{value}"' for name, value in pairs) + "}"


def _summary_key(key: LabelKey) -> str:
    return ",".join(f"{name}={value}" for name, value in key) if key else "default"


@dataclass
class _HistogramSeries:
    buckets: list[int]
    count: int = 0
    total: float = 0.0


@dataclass
class _Metric:
    """One named metric holding a series per label set."""

    name: str
    kind: str
    help_text: str = ""
    bounds: tuple[float, ...] = DEFAULT_BUCKETS
    series: dict[LabelKey, Any] = field(default_factory=dict)

    def add(self, value: float, key: LabelKey) -> None:
        if self.kind == "counter":
            if value < 0:
                raise ValueError(f"Counter {self.name} cannot decrease")
            self.series[key] = self.series.get(key, 0.0) + value
            return
        hist = self.series.setdefault(key, _HistogramSeries(buckets=[0] * len(self.bounds)))
        hist.count += 1
        hist.total += value
        for index, bound in enumerate(self.bounds):
            if value <= bound:
                hist.buckets[index] += 1


_lock = threading.Lock()
_metrics: dict[str, _Metric] = {}


def _record(name: str, kind: str, value: float, labels: Labels | None, help_text: str) -> None:
    with _lock:
        metric = _metrics.get(name)
        if metric is None:
            metric = _metrics[name] = _Metric(name=name, kind=kind, help_text=help_text)
        elif metric.kind != kind:
            raise ValueError(f"Metric {name} is a {metric.kind}, not a {kind}")
        metric.add(value, _key(labels))


def _snapshot() -> list[_Metric]:
    with _lock:
        return [
            _Metric(
                name=m.name,
                kind=m.kind,
                help_text=m.help_text,
                bounds=m.bounds,
                series={
                    key: (
                        _HistogramSeries(list(s.buckets), s.count, s.total)
                        if isinstance(s, _HistogramSeries)
                        else s
                    )
                    for key, s in m.series.items()
                },
            )
            for m in _metrics.values()
        ]


def reset_metrics() -> None:
    """Drop every recorded value. Used by tests."""
    with _lock:
        _metrics.clear()


def increment_counter(
    name: str,
    value: float = 1.0,
    labels: Labels | None = None,
    help_text: str = "",
) -> None:
    _record(name, "counter", value, labels, help_text)


def observe_histogram(
    name: str,
    value: float,
    labels: Labels | None = None,
    help_text: str = "",
) -> None:
    _record(name, "histogram", value, labels, help_text)


class Timer:
    """Context manager for timing operations and recording to a histogram."""

    def __init__(
        self,
        histogram_name: str,
        labels: Labels | None = None,
        help_text: str = "",
    ) -> None:
        self.histogram_name = histogram_name
        self.labels = labels
        self.help_text = help_text
        self.duration: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, *args: object) -> None:
        self.duration = time.perf_counter() - self._start
        observe_histogram(self.histogram_name, self.duration, self.labels, self.help_text)


# ---------------------------------------------------------------------------
# Market metrics
# ---------------------------------------------------------------------------

API_REQUESTS = "api_requests_total"
API_REQUEST_DURATION = "api_request_duration_seconds"
BIDS = "bids_total"
BUY_ORDERS = "buy_order_events_total"
PHOTO_SYNC = "listing_photo_changes_total"
GROUPING = "multiple_grouping_operations_total"
GROUPED_LISTINGS = "multiple_grouped_listings_total"


def record_api_request(endpoint: str, method: str, status_code: int, duration: float) -> None:
    """Record an API request with its outcome and duration."""
    increment_counter(
        API_REQUESTS,
        labels={"endpoint": endpoint, "method": method, "status": status_code},
        help_text="Total API requests",
    )
    observe_histogram(
        API_REQUEST_DURATION,
        duration,
        labels={"endpoint": endpoint, "method": method},
        help_text="API request duration in seconds",
    )


def record_bid(outcome: str) -> None:
    """Record a bid attempt.

    Args:
        outcome: 'accepted', or the rejection reason ('too_low', 'closed',
            'own_listing', 'not_auction', ...)
    """
    increment_counter(BIDS, labels={"outcome": outcome}, help_text="Total bid attempts")


def record_buy_order(event: str) -> None:
    """Record a buy-order lifecycle event ('created', 'fulfilled', 'cancelled')."""
    increment_counter(BUY_ORDERS, labels={"event": event}, help_text="Buy order lifecycle events")


def record_photo_sync(created: int, preserved: int, deleted: int) -> None:
    """Record the outcome of one listing photo reconciliation."""
    for action, count in (("created", created), ("preserved", preserved), ("deleted", deleted)):
        if count:
            increment_counter(
                PHOTO_SYNC,
                value=float(count),
                labels={"action": action},
                help_text="Listing photo changes applied by reconciliation",
            )


def record_grouping(operation: str, listings: int = 0) -> None:
    """Record a multiple create/update and how many listings it moved."""
    increment_counter(
        GROUPING, labels={"operation": operation}, help_text="Multiple grouping operations"
    )
    if listings:
        increment_counter(
            GROUPED_LISTINGS,
            value=float(listings),
            labels={"operation": operation},
            help_text="Listings converted by grouping operations",
        )


# ---------------------------------------------------------------------------
# Export
# ---------------------------------------------------------------------------


def get_metrics_summary() -> dict[str, dict[str, object]]:
    """Counters as plain values and histograms as count/sum/avg, keyed by label text."""
    summary: dict[str, dict[str, object]] = {"counters": {}, "histograms": {}}
    for metric in _snapshot():
        if metric.kind == "counter":
            summary["counters"][metric.name] = {
                _summary_key(key): value for key, value in metric.series.items()
            }
        else:
            summary["histograms"][metric.name] = {
                _summary_key(key): {
                    "count": s.count,
                    "sum": s.total,
                    "avg": s.total / s.count if s.count else 0.0,
                }
                for key, s in metric.series.items()
            }
    return summary


def format_prometheus() -> str:
    """Every metric in the Prometheus text exposition format."""
    lines: list[str] = []
    for metric in sorted(_snapshot(), key=lambda m: (m.kind != "counter", m.name)):
        if metric.help_text:
            lines.append(f"# HELP {metric.name} {metric.help_text}")
        lines.append(f"# TYPE {metric.name} {metric.kind}")
        for key, s in metric.series.items():
            if metric.kind == "counter":
                lines.append(f"{metric.name}{_render(key)} {s}")
                continue
            for bound, hits in zip(metric.bounds, s.buckets):
                lines.append(f"{metric.name}_bucket{_render(key, ('le', str(bound)))} {hits}")
            lines.append(f"{metric.name}_bucket{_render(key, ('le', '+Inf'))} {s.count}")
            lines.append(f"{metric.name}_count{_render(key)} {s.count}")
            lines.append(f"{metric.name}_sum{_render(key)} {s.total}")
    return "\n".join(lines) + "\n" if lines else ""
