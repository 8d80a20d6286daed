"""Observability module for logging, tracing, and metrics."""

from docs_site_search.observability.context import LogContext, bind_context, current_context
from docs_site_search.observability.logging import JsonFormatter, configure_logging
from docs_site_search.observability.metrics import (
    INDEX_BUILDS,
    INDEX_DOC_COUNT,
    INDEX_TERM_COUNT,
    SEARCH_LATENCY,
    SEARCH_QUERIES,
    MetricBridge,
    get_metrics,
    get_metrics_content_type,
    init_metrics,
    track_latency,
)
from docs_site_search.observability.tracing import create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_BUILDS",
    "INDEX_DOC_COUNT",
    "INDEX_TERM_COUNT",
    "SEARCH_LATENCY",
    "SEARCH_QUERIES",
    "JsonFormatter",
    "LogContext",
    "MetricBridge",
    "bind_context",
    "configure_logging",
    "create_span",
    "current_context",
    "get_metrics",
    "get_metrics_content_type",
    "get_tracer",
    "init_metrics",
    "init_tracing",
    "track_latency",
]
