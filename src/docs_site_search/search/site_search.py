"""Session-level search holder with readiness and atomic rebuilds.

Hides the moving parts (feed validation, index build, snapshots, metrics)
behind ``rebuild`` and ``search``. A built document store and its index are
published together as one immutable ``SearchSnapshot``; readers grab the
current reference and never observe a half-built index. A failed or
cancelled rebuild leaves the previous snapshot in place.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
import logging
from pathlib import Path
import threading
import time
from typing import Any

from docs_site_search.config import SearchConfig, load_search_config
from docs_site_search.domain.search import SearchHit, SearchResponse
from docs_site_search.errors import IndexNotReadyError, SearchError
from docs_site_search.observability.context import bind_context
from docs_site_search.observability.metrics import (
    INDEX_BUILDS,
    INDEX_DOC_COUNT,
    INDEX_TERM_COUNT,
    SEARCH_LATENCY,
    SEARCH_QUERIES,
    track_latency,
)
from docs_site_search.search.analyzers import Analyzer
from docs_site_search.search.documents import DocumentStore, load
from docs_site_search.search.engine import QueryEngine
from docs_site_search.search.formatter import build_response, format_results
from docs_site_search.search.index import CancellationToken, InvertedIndex, build
from docs_site_search.search.models import RankedResult
from docs_site_search.search.storage import JsonIndexStore


logger = logging.getLogger(__name__)

RecordFetcher = Callable[[], Awaitable[Iterable[Mapping[str, Any]]]]


@dataclass(frozen=True)
class SearchSnapshot:
    """A document store and the index built from it, published together."""

    store: DocumentStore
    index: InvertedIndex
    engine: QueryEngine
    built_at: float


@dataclass(frozen=True)
class IndexBuildResult:
    """Outcome of a rebuild."""

    documents_indexed: int
    terms_indexed: int
    duration_ms: float


class SiteSearch:
    """Own the published index of one site and answer queries against it."""

    def __init__(self, config: SearchConfig | Mapping[str, Any] | None = None, *, site: str = "default") -> None:
        self.config = load_search_config(config)
        self.analyzer = Analyzer.from_config(self.config)
        self.site = site
        self._snapshot: SearchSnapshot | None = None
        self._build_lock = threading.Lock()
        self._ready = threading.Event()
        self._waiters: list[tuple[asyncio.AbstractEventLoop, asyncio.Future[None]]] = []
        self._waiters_lock = threading.Lock()

    @property
    def is_ready(self) -> bool:
        return self._ready.is_set()

    @property
    def snapshot(self) -> SearchSnapshot:
        snapshot = self._snapshot
        if snapshot is None:
            raise IndexNotReadyError("Search index has not been built yet")
        return snapshot

    def wait_ready(self, timeout: float | None = None) -> bool:
        """Block until the first index is published; return readiness."""
        return self._ready.wait(timeout)

    async def wait_until_ready(self) -> None:
        """Wait without blocking the event loop until the first index is published."""
        if self._ready.is_set():
            return
        loop = asyncio.get_running_loop()
        waiter: asyncio.Future[None] = loop.create_future()
        with self._waiters_lock:
            if self._ready.is_set():
                return
            self._waiters.append((loop, waiter))
        try:
            await waiter
        finally:
            with self._waiters_lock:
                if (loop, waiter) in self._waiters:
                    self._waiters.remove((loop, waiter))

    def _notify_waiters(self) -> None:
        with self._waiters_lock:
            self._ready.set()
            waiters, self._waiters = self._waiters, []
        for loop, waiter in waiters:
            if not loop.is_closed():
                loop.call_soon_threadsafe(_resolve, waiter)

    def rebuild(
        self,
        records: Iterable[Mapping[str, Any]],
        *,
        cancel_token: CancellationToken | None = None,
    ) -> IndexBuildResult:
        """Validate ``records``, build a fresh index and publish it atomically."""

        with self._build_lock, bind_context(site=self.site, operation="rebuild"):
            started = time.perf_counter()
            try:
                store = load(records)
                index = build(store, self.config, analyzer=self.analyzer, cancel_token=cancel_token)
            except SearchError as exc:
                INDEX_BUILDS.labels(site=self.site, status=type(exc).__name__).inc()
                logger.warning("Index rebuild failed; keeping previous index: %s", exc)
                raise
            self._publish(store, index)
            duration_ms = (time.perf_counter() - started) * 1000
            INDEX_BUILDS.labels(site=self.site, status="ok").inc()
            return IndexBuildResult(
                documents_indexed=index.document_count,
                terms_indexed=index.term_count,
                duration_ms=duration_ms,
            )

    async def rebuild_async(
        self,
        fetch: RecordFetcher,
        *,
        cancel_token: CancellationToken | None = None,
    ) -> IndexBuildResult:
        """Await the feed, then build off the event loop and publish."""

        records = list(await fetch())
        return await asyncio.to_thread(self.rebuild, records, cancel_token=cancel_token)

    def search(self, query: object, *, limit: int | None = None) -> list[RankedResult]:
        """Return ranked ``RankedResult`` values for ``query``."""

        return self._search(self.snapshot, query, limit)

    def search_hits(self, query: object, *, limit: int | None = None) -> list[SearchHit]:
        """Return display records for ``query``."""

        snapshot = self.snapshot
        return format_results(self._search(snapshot, query, limit), snapshot.store)

    def search_response(self, query: str, *, limit: int | None = None) -> SearchResponse:
        snapshot = self.snapshot
        started = time.perf_counter()
        ranked = self._search(snapshot, query, limit)
        elapsed_ms = (time.perf_counter() - started) * 1000
        return build_response(query, ranked, snapshot.store, search_time_ms=elapsed_ms)

    def _search(self, snapshot: SearchSnapshot, query: object, limit: int | None) -> list[RankedResult]:
        try:
            with bind_context(site=self.site, operation="search"), track_latency(SEARCH_LATENCY, site=self.site):
                ranked = snapshot.engine.search(query, limit=limit)
        except SearchError:
            SEARCH_QUERIES.labels(site=self.site, outcome="error").inc()
            raise
        SEARCH_QUERIES.labels(site=self.site, outcome="hit" if ranked else "miss").inc()
        return ranked

    def save_snapshot(self, path: str | Path) -> Path:
        snapshot = self.snapshot
        return JsonIndexStore(path).save(snapshot.store, snapshot.index)

    def load_snapshot(self, path: str | Path) -> IndexBuildResult:
        """Publish a persisted index built with this instance's options."""

        with self._build_lock, bind_context(site=self.site, operation="load_snapshot"):
            started = time.perf_counter()
            store, index = JsonIndexStore(path).load(self.config)
            self._publish(store, index)
            return IndexBuildResult(
                documents_indexed=index.document_count,
                terms_indexed=index.term_count,
                duration_ms=(time.perf_counter() - started) * 1000,
            )

    def _publish(self, store: DocumentStore, index: InvertedIndex) -> None:
        engine = QueryEngine(index, self.config)
        self._snapshot = SearchSnapshot(store=store, index=index, engine=engine, built_at=time.time())
        self._notify_waiters()
        INDEX_DOC_COUNT.labels(site=self.site).set(index.document_count)
        INDEX_TERM_COUNT.labels(site=self.site).set(index.term_count)
        logger.info("Published index for site %s: %s documents", self.site, index.document_count)


def _resolve(waiter: asyncio.Future[None]) -> None:
    if not waiter.done():
        waiter.set_result(None)
