"""Map ranked document ids back to display records."""

from __future__ import annotations

from collections.abc import Iterable
import logging

from docs_site_search.domain.search import SearchHit, SearchResponse
from docs_site_search.search.documents import DocumentStore
from docs_site_search.search.models import RankedResult


logger = logging.getLogger(__name__)


def format_results(ranked: Iterable[RankedResult], store: DocumentStore) -> list[SearchHit]:
    """Join ranked results with ``store``; ids missing from the store are skipped."""

    hits: list[SearchHit] = []
    for result in ranked:
        document = store.get(result.document_id)
        if document is None:
            logger.warning("Ranked document %r is not in the document store", result.document_id)
            continue
        hits.append(
            SearchHit(
                title=document.title,
                excerpt=document.excerpt,
                url=document.url,
                score=result.score,
            )
        )
    return hits


def build_response(
    query: str,
    ranked: Iterable[RankedResult],
    store: DocumentStore,
    *,
    search_time_ms: float | None = None,
) -> SearchResponse:
    hits = format_results(ranked, store)
    return SearchResponse(query=query, results=hits, total_count=len(hits), search_time_ms=search_time_ms)
