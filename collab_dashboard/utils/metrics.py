"""Prometheus metrics for observability."""

import time
from collections import defaultdict
from dataclasses import dataclass, field

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


def _label_values(labels: tuple[str, ...], values: dict[str, str]) -> tuple[str, ...]:
    return tuple(values.get(label, "") for label in labels)


def _format_labels(labels: tuple[str, ...], values: tuple[str, ...]) -> str:
    return ",".join(f'{label}="{value}"' for label, value in zip(labels, values))


@dataclass
class Counter:
    """Simple counter metric."""

    name: str
    help: str
    labels: tuple[str, ...] = ()
    _values: dict[tuple, float] = field(default_factory=lambda: defaultdict(float))

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        """Increment the counter."""
        self._values[_label_values(self.labels, labels)] += amount

    def get(self, **labels: str) -> float:
        """Get counter value."""
        return self._values.get(_label_values(self.labels, labels), 0.0)


@dataclass
class Gauge:
    """Simple gauge metric."""

    name: str
    help: str
    labels: tuple[str, ...] = ()
    _values: dict[tuple, float] = field(default_factory=lambda: defaultdict(float))

    def set(self, value: float, **labels: str) -> None:
        self._values[_label_values(self.labels, labels)] = value

    def inc(self, amount: float = 1.0, **labels: str) -> None:
        self._values[_label_values(self.labels, labels)] += amount

    def dec(self, amount: float = 1.0, **labels: str) -> None:
        self._values[_label_values(self.labels, labels)] -= amount

    def get(self, **labels: str) -> float:
        return self._values.get(_label_values(self.labels, labels), 0.0)


@dataclass
class Histogram:
    """Simple histogram metric with predefined buckets."""

    name: str
    help: str
    labels: tuple[str, ...] = ()
    buckets: tuple[float, ...] = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
    _counts: dict[tuple, dict[float, int]] = field(
        default_factory=lambda: defaultdict(lambda: defaultdict(int))
    )
    _sums: dict[tuple, float] = field(default_factory=lambda: defaultdict(float))
    _totals: dict[tuple, int] = field(default_factory=lambda: defaultdict(int))

    def observe(self, value: float, **labels: str) -> None:
        """Observe a value."""
        label_values = _label_values(self.labels, labels)
        self._sums[label_values] += value
        self._totals[label_values] += 1
        # Non-cumulative per bucket; the exposition sums them up
        for bucket in self.buckets:
            if value <= bucket:
                self._counts[label_values][bucket] += 1
                break


class MetricsRegistry:
    """Registry for all metrics."""

    def __init__(self):
        # HTTP metrics
        self.http_requests_total = Counter(
            name="http_requests_total",
            help="Total number of HTTP requests",
            labels=("method", "path", "status"),
        )

        self.http_request_duration_seconds = Histogram(
            name="http_request_duration_seconds",
            help="HTTP request duration in seconds",
            labels=("method", "path"),
        )

        self.http_requests_in_progress = Gauge(
            name="http_requests_in_progress",
            help="Number of HTTP requests in progress",
            labels=("method",),
        )

        # GitHub API metrics
        self.github_api_requests_total = Counter(
            name="github_api_requests_total",
            help="Total number of GitHub API requests",
            labels=("operation", "status"),
        )

        self.github_api_duration_seconds = Histogram(
            name="github_api_duration_seconds",
            help="GitHub API request duration in seconds",
            labels=("operation",),
        )

        # Domain metrics
        self.oauth_logins_total = Counter(
            name="oauth_logins_total",
            help="Total number of OAuth callbacks by outcome",
            labels=("outcome",),
        )

        self.collaborator_removals_total = Counter(
            name="collaborator_removals_total",
            help="Total number of collaborator removal attempts by outcome",
            labels=("outcome",),
        )

    def format_prometheus(self) -> str:
        """Format all metrics in Prometheus exposition format."""
        lines = []

        for metric in self.__dict__.values():
            if isinstance(metric, (Counter, Gauge)):
                kind = "counter" if isinstance(metric, Counter) else "gauge"
                lines.append(f"# HELP {metric.name} {metric.help}")
                lines.append(f"# TYPE {metric.name} {kind}")
                for label_values, value in metric._values.items():
                    if metric.labels:
                        labels_str = _format_labels(metric.labels, label_values)
                        lines.append(f"{metric.name}{{{labels_str}}} {value}")
                    else:
                        lines.append(f"{metric.name} {value}")

            elif isinstance(metric, Histogram):
                lines.append(f"# HELP {metric.name} {metric.help}")
                lines.append(f"# TYPE {metric.name} histogram")
                for label_values in metric._sums.keys():
                    if metric.labels:
                        base_labels = "{" + _format_labels(metric.labels, label_values) + ","
                        plain_labels = "{" + _format_labels(metric.labels, label_values) + "}"
                    else:
                        base_labels = "{"
                        plain_labels = ""

                    cumulative = 0
                    for bucket in metric.buckets:
                        cumulative += metric._counts[label_values].get(bucket, 0)
                        lines.append(f'{metric.name}_bucket{base_labels}le="{bucket}"}} {cumulative}')
                    lines.append(
                        f'{metric.name}_bucket{base_labels}le="+Inf"}} {metric._totals[label_values]}'
                    )
                    lines.append(f"{metric.name}_sum{plain_labels} {metric._sums[label_values]}")
                    lines.append(f"{metric.name}_count{plain_labels} {metric._totals[label_values]}")

        return "\n".join(lines) + "\n"


# Global metrics registry
metrics = MetricsRegistry()


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP metrics."""

    async def dispatch(self, request: Request, call_next) -> Response:
        method = request.method

        metrics.http_requests_in_progress.inc(method=method)

        start_time = time.monotonic()
        status = "500"
        try:
            response = await call_next(request)
            status = str(response.status_code)
        finally:
            duration = time.monotonic() - start_time
            # Resolved by the router during call_next
            path = self._route_label(request)
            metrics.http_requests_total.inc(method=method, path=path, status=status)
            metrics.http_request_duration_seconds.observe(duration, method=method, path=path)
            metrics.http_requests_in_progress.dec(method=method)

        return response

    def _route_label(self, request: Request) -> str:
        """Route template for metric labels, so unknown URLs share one series."""
        route = request.scope.get("route")
        return getattr(route, "path", None) or "unmatched"
