"""Ranked query evaluation over an ``InvertedIndex``.

Scoring is BM25F-flavoured tf/idf::

    score(d) = coord(d) * sum over matched terms t and fields f of
               idf(t) * weight(f) * tf_norm(tf(t, d, f), len(d, f), avglen(f))

    idf(t)   = ln(1 + N / df(t))
    coord(d) = distinct query terms matched by d / distinct query terms

``tf_norm`` is the BM25 saturation from ``stats.bm25_tf``; its ``b`` knob is
the document length normalization. Results are sorted by score, then by
document position in the store.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping
from dataclasses import dataclass
import logging
from types import MappingProxyType

from docs_site_search.config import SearchConfig, load_search_config
from docs_site_search.errors import QueryError
from docs_site_search.observability.tracing import create_span
from docs_site_search.search.index import InvertedIndex
from docs_site_search.search.models import RankedResult
from docs_site_search.search.stats import bm25_tf, calculate_idf


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueryTerms:
    """Distinct analyzed query terms in first-seen order."""

    terms: tuple[str, ...]
    seed_text: str

    @classmethod
    def empty(cls) -> QueryTerms:
        return cls((), "")

    def is_empty(self) -> bool:
        return not self.terms

    def __len__(self) -> int:
        return len(self.terms)


class QueryEngine:
    """Score and rank documents of one index.

    The engine is stateless apart from its inputs, so repeated calls with the
    same query return the same ordered results and concurrent callers never
    interfere.
    """

    def __init__(self, index: InvertedIndex, config: SearchConfig | None = None) -> None:
        self.index = index
        self.config = load_search_config(config) if config is not None else index.config
        self.weights: Mapping[str, float] = MappingProxyType(
            {name: index.schema.get_weight(name, self.config.field_weights) for name in index.schema.indexed_field_names}
        )

    def parse(self, query: object) -> QueryTerms:
        """Tokenize ``query`` with the analyzer the index was built with."""

        if not isinstance(query, str):
            raise QueryError(f"Query must be a string, got {type(query).__name__}")
        seed = query.strip()
        if not seed:
            return QueryTerms.empty()
        terms = tuple(dict.fromkeys(self.index.analyzer.tokenize(seed)))
        return QueryTerms(terms, seed)

    def search(self, query: object, *, limit: int | None = None) -> list[RankedResult]:
        """Return ranked results; an empty or unmatched query yields ``[]``."""

        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit < 0):
            raise QueryError(f"Result limit must be a non-negative integer, got {limit!r}")
        parsed = self.parse(query)
        if parsed.is_empty():
            return []

        with create_span("search.query", attributes={"search.terms": len(parsed)}) as span:
            ranked = self._rank(parsed)
            effective_limit = limit if limit is not None else self.config.result_limit
            if effective_limit is not None:
                ranked = ranked[:effective_limit]
            span.set_attribute("search.results", len(ranked))

        logger.debug("Query %r matched %s documents", parsed.seed_text, len(ranked))
        return ranked

    def _rank(self, parsed: QueryTerms) -> list[RankedResult]:
        index = self.index
        ranking = self.config.ranking
        total_docs = index.document_count
        scores: defaultdict[int, float] = defaultdict(float)
        matched: defaultdict[int, int] = defaultdict(int)

        for term in parsed.terms:
            postings = index.get_postings(term)
            if not postings:
                continue
            idf = calculate_idf(index.doc_frequency[term], total_docs)
            seen_docs: set[int] = set()
            for posting in postings:
                stats = index.length_stats.get(posting.field)
                avg_length = stats.average_length if stats else 0.0
                weight = bm25_tf(
                    posting.frequency,
                    index.field_length(posting.field, posting.doc),
                    avg_length,
                    k1=ranking.k1,
                    b=ranking.b,
                )
                scores[posting.doc] += idf * self.weights.get(posting.field, 0.0) * weight
                if posting.doc not in seen_docs:
                    seen_docs.add(posting.doc)
                    matched[posting.doc] += 1

        required = self._required_matches(len(parsed))
        query_size = len(parsed)
        candidates = [
            (scores[doc] * matched[doc] / query_size, doc) for doc in scores if matched[doc] >= required
        ]
        candidates.sort(key=lambda item: (-item[0], item[1]))
        return [RankedResult(document_id=index.doc_ids[doc], score=score) for score, doc in candidates]

    def _required_matches(self, query_size: int) -> int:
        if self.config.match_mode == "all":
            return query_size
        return min(self.config.min_match, query_size)


def search(
    query: object,
    index: InvertedIndex,
    *,
    config: SearchConfig | None = None,
    limit: int | None = None,
) -> list[RankedResult]:
    """Rank documents of ``index`` for ``query``."""

    return QueryEngine(index, config).search(query, limit=limit)
