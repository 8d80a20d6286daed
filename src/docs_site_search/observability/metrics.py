"""Search and index-build metrics.

Each metric is declared once and recorded twice: in the default
prometheus_client registry (scraped through ``get_metrics``) and on an
OpenTelemetry instrument of the meter set up by ``init_metrics``.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import contextmanager
import time
from typing import TYPE_CHECKING, Any, Literal

from opentelemetry import metrics as otel_metrics
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader
from opentelemetry.sdk.resources import Resource
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Gauge, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


MetricKind = Literal["counter", "histogram", "gauge"]

_meter_holder: dict[str, Any] = {"meter": None, "provider": None}


def init_metrics(
    service_name: str = "docs-site-search",
    resource_attributes: dict[str, str] | None = None,
    metric_readers: list[MetricReader] | None = None,
) -> MeterProvider:
    """Create the meter provider; passing readers replaces an existing one."""
    provider = _meter_holder.get("provider")
    if isinstance(provider, MeterProvider) and not metric_readers:
        return provider

    resource = Resource.create({"service.name": service_name, **(resource_attributes or {})})
    provider = MeterProvider(resource=resource, metric_readers=metric_readers or [])
    _meter_holder["provider"] = provider
    _meter_holder["meter"] = provider.get_meter(__name__)
    for bridge in _BRIDGES:
        bridge.reset_instrument()
    return provider


def _get_meter():
    if _meter_holder.get("meter") is None:
        _meter_holder["meter"] = otel_metrics.get_meter(__name__)
    return _meter_holder["meter"]


class _BoundMetric:
    def __init__(self, bridge: MetricBridge, labels: dict[str, str]) -> None:
        self._bridge = bridge
        self._labels = labels

    def inc(self, amount: float = 1.0) -> None:
        self._bridge.inc(self._labels, amount)

    def observe(self, value: float) -> None:
        self._bridge.observe(self._labels, value)

    def set(self, value: float) -> None:
        self._bridge.set(self._labels, value)


class MetricBridge:
    """A Prometheus metric paired with a lazily created OTel instrument.

    OTel has no settable gauge in the stable API, so gauges are mirrored onto
    an up-down counter by adding the delta from the last value per label set.
    """

    def __init__(
        self,
        prom_metric: Counter | Histogram | Gauge,
        *,
        kind: MetricKind,
        otel_name: str,
        otel_description: str,
    ) -> None:
        self._prom_metric = prom_metric
        self._kind = kind
        self._otel_name = otel_name
        self._otel_description = otel_description
        self._instrument = None
        self._gauge_values: dict[tuple[tuple[str, str], ...], float] = {}

    @property
    def prometheus(self) -> Counter | Histogram | Gauge:
        return self._prom_metric

    def labels(self, **labels: str) -> _BoundMetric:
        return _BoundMetric(self, labels)

    def reset_instrument(self) -> None:
        self._instrument = None
        self._gauge_values.clear()

    def _otel(self):
        if self._instrument is None:
            meter = _get_meter()
            create = {
                "counter": meter.create_counter,
                "histogram": meter.create_histogram,
                "gauge": meter.create_up_down_counter,
            }[self._kind]
            self._instrument = create(self._otel_name, description=self._otel_description)
        return self._instrument

    def inc(self, labels: dict[str, str], amount: float) -> None:
        self._prom_metric.labels(**labels).inc(amount)
        self._otel().add(amount, labels)

    def observe(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).observe(value)
        self._otel().record(value, labels)

    def set(self, labels: dict[str, str], value: float) -> None:
        self._prom_metric.labels(**labels).set(value)
        key = tuple(sorted(labels.items()))
        delta = value - self._gauge_values.get(key, 0.0)
        if delta:
            self._otel().add(delta, labels)
        self._gauge_values[key] = value


def _declare(kind: MetricKind, name: str, description: str, labels: Sequence[str], **options: Any) -> MetricBridge:
    factory = {"counter": Counter, "histogram": Histogram, "gauge": Gauge}[kind]
    prom_metric = factory(name, description, list(labels), **options)
    otel_name = f"{name}_total" if kind == "counter" else name
    return MetricBridge(prom_metric, kind=kind, otel_name=otel_name, otel_description=description)


SEARCH_LATENCY = _declare(
    "histogram",
    "search_latency_seconds",
    "Query evaluation latency",
    ["site"],
    buckets=(0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1),
)
SEARCH_QUERIES = _declare("counter", "search_queries", "Queries by outcome (hit, miss, error)", ["site", "outcome"])
INDEX_BUILDS = _declare("counter", "index_builds", "Index rebuilds by status or error type", ["site", "status"])
INDEX_DOC_COUNT = _declare("gauge", "index_document_count", "Documents in the published index", ["site"])
INDEX_TERM_COUNT = _declare("gauge", "index_term_count", "Distinct terms in the published index", ["site"])

_BRIDGES = (SEARCH_LATENCY, SEARCH_QUERIES, INDEX_BUILDS, INDEX_DOC_COUNT, INDEX_TERM_COUNT)


@contextmanager
def track_latency(histogram: MetricBridge, **labels: str) -> Generator[None, None, None]:
    """Observe the block's wall time on ``histogram``, also when it raises."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Prometheus text exposition of the default registry."""
    return generate_latest()


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
