"""In-process metrics in the Prometheus text format.

Covers HTTP requests, tool invocations and streaming sessions. All
series live in one process-wide registry, served by the /metrics
endpoints; nothing is pushed anywhere.
"""

import bisect
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Any

LabelKey = tuple[tuple[str, str], ...]

# Tool handlers only format strings, so most calls finish well under 1ms.
DEFAULT_BUCKETS = (0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0)

HELP = {
    "metacog_http_requests_total": "HTTP requests served",
    "metacog_http_request_duration_seconds": "HTTP request latency",
    "metacog_tool_invocations_total": "Tool invocations by outcome",
    "metacog_tool_duration_seconds": "Tool handler latency",
    "metacog_stream_sessions_total": "Streaming sessions opened and closed",
    "metacog_stream_sessions_open": "Streaming sessions currently open",
}


def label_key(labels: dict[str, str] | None) -> LabelKey:
    return tuple(sorted((labels or {}).items()))


def _render(key: LabelKey, *extra: tuple[str, str]) -> str:
    pairs = [*extra, *key]
    if not pairs:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in pairs) + "}"


def _stat_key(key: LabelKey) -> str:
    return ",".join(f'{k}="{v}"' for k, v in key)


@dataclass
class Histogram:
    """Latency histogram with fixed upper bounds."""

    buckets: tuple[float, ...] = DEFAULT_BUCKETS
    hits: list[int] = field(init=False)
    sum: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        # One slot per bucket plus overflow
        self.hits = [0] * (len(self.buckets) + 1)

    def observe(self, value: float) -> None:
        self.sum += value
        self.count += 1
        self.hits[bisect.bisect_left(self.buckets, value)] += 1

    def cumulative(self) -> list[int]:
        """Observations at or below each bucket bound."""
        running = 0
        totals = []
        for hits in self.hits[:-1]:
            running += hits
            totals.append(running)
        return totals

    def to_prometheus(self, name: str, key: LabelKey = ()) -> str:
        lines = [
            f"{name}_bucket{_render(key, ('le', str(bound)))} {total}"
            for bound, total in zip(self.buckets, self.cumulative(), strict=True)
        ]
        lines.append(f"{name}_bucket{_render(key, ('le', '+Inf'))} {self.count}")
        lines.append(f"{name}_sum{_render(key)} {self.sum}")
        lines.append(f"{name}_count{_render(key)} {self.count}")
        return "\n".join(lines)


class MetricsRegistry:
    """Thread-safe counters, gauges and histograms keyed by label set."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._counters: dict[str, Counter[LabelKey]] = defaultdict(Counter)
        self._gauges: dict[str, dict[LabelKey, float]] = defaultdict(lambda: defaultdict(float))
        self._histograms: dict[str, dict[LabelKey, Histogram]] = defaultdict(dict)

    def inc_counter(self, name: str, labels: dict[str, str] | None = None, value: int = 1) -> None:
        with self._lock:
            self._counters[name][label_key(labels)] += value

    def add_gauge(self, name: str, delta: float, labels: dict[str, str] | None = None) -> None:
        """Move a gauge up or down."""
        with self._lock:
            self._gauges[name][label_key(labels)] += delta

    def observe_histogram(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        key = label_key(labels)
        with self._lock:
            series = self._histograms[name]
            if key not in series:
                series[key] = Histogram()
            series[key].observe(value)

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()

    def to_prometheus(self) -> str:
        """Render every series in the Prometheus text exposition format."""
        lines: list[str] = []

        def header(name: str, kind: str) -> None:
            if name in HELP:
                lines.append(f"# HELP {name} {HELP[name]}")
            lines.append(f"# TYPE {name} {kind}")

        with self._lock:
            for name, counts in self._counters.items():
                header(name, "counter")
                lines.extend(f"{name}{_render(key)} {value}" for key, value in counts.items())
                lines.append("")

            for name, values in self._gauges.items():
                header(name, "gauge")
                lines.extend(f"{name}{_render(key)} {value}" for key, value in values.items())
                lines.append("")

            for name, series in self._histograms.items():
                header(name, "histogram")
                lines.extend(histogram.to_prometheus(name, key) for key, histogram in series.items())
                lines.append("")

        return "\n".join(lines)

    def get_stats(self) -> dict[str, Any]:
        """Snapshot for the JSON endpoint. Label sets are rendered as strings."""
        with self._lock:
            return {
                "counters": {
                    name: {_stat_key(k): v for k, v in counts.items()}
                    for name, counts in self._counters.items()
                },
                "gauges": {
                    name: {_stat_key(k): v for k, v in values.items()}
                    for name, values in self._gauges.items()
                },
                "histograms": {
                    name: {_stat_key(k): {"count": h.count, "sum": h.sum} for k, h in series.items()}
                    for name, series in self._histograms.items()
                },
            }


metrics = MetricsRegistry()


def record_request(method: str, path: str, status_code: int, duration: float) -> None:
    labels = {"method": method, "path": path, "status": str(status_code)}
    metrics.inc_counter("metacog_http_requests_total", labels)
    metrics.observe_histogram("metacog_http_request_duration_seconds", duration, labels)


def record_tool_invocation(tool_name: str, status: str, duration: float) -> None:
    """Count one invocation and time its handler."""
    metrics.inc_counter("metacog_tool_invocations_total", {"tool": tool_name, "status": status})
    metrics.observe_histogram("metacog_tool_duration_seconds", duration, {"tool": tool_name})


def record_stream_session(action: str) -> None:
    """Track a streaming session being opened or closed."""
    metrics.inc_counter("metacog_stream_sessions_total", {"action": action})
    metrics.add_gauge("metacog_stream_sessions_open", 1 if action == "opened" else -1)
