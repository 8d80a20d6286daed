"""Per-operation log context.

A rebuild or a query binds its site and operation name with ``bind_context``;
every record logged inside the block carries those fields plus the current
trace and span ids. Spans opened by ``tracing.create_span`` replace the ids
with the OpenTelemetry ones.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field, replace
from types import MappingProxyType
from uuid import uuid4


@dataclass(frozen=True)
class LogContext:
    trace_id: str
    span_id: str
    fields: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))

    def as_dict(self) -> dict[str, object]:
        return {"trace_id": self.trace_id, "span_id": self.span_id, **self.fields}


_current: ContextVar[LogContext | None] = ContextVar("docs_site_search_log_context", default=None)


def new_trace_id() -> str:
    return uuid4().hex


def new_span_id() -> str:
    return uuid4().hex[:16]


def current_context() -> LogContext:
    """Return the bound context, starting a fresh trace when none is bound."""
    context = _current.get()
    if context is None:
        context = LogContext(trace_id=new_trace_id(), span_id=new_span_id())
        _current.set(context)
    return context


@contextmanager
def bind_context(**fields: object) -> Iterator[LogContext]:
    """Start a new trace for the block, keeping outer fields unless overridden."""
    outer = _current.get()
    merged = {**(outer.fields if outer else {}), **fields}
    context = LogContext(trace_id=new_trace_id(), span_id=new_span_id(), fields=MappingProxyType(merged))
    token = _current.set(context)
    try:
        yield context
    finally:
        _current.reset(token)


def attach_span_ids(trace_id: str, span_id: str) -> Token[LogContext | None]:
    """Point the bound context at an active span; pass the token to ``detach_span_ids``."""
    return _current.set(replace(current_context(), trace_id=trace_id, span_id=span_id))


def detach_span_ids(token: Token[LogContext | None]) -> None:
    """Restore the ids that were bound before ``attach_span_ids``."""
    _current.reset(token)
