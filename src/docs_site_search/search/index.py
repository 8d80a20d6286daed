"""Inverted index construction.

``IndexBuilder`` accepts documents from a ``DocumentStore`` and produces an
immutable ``InvertedIndex``. The index is an arena: documents are referred to
by their integer position in the store, postings hold plain integers and
strings, and document ids are resolved through ``InvertedIndex.doc_ids``.

All statistics are order-independent aggregates (counts and sums), and
postings are emitted sorted by document position then schema field order, so
building twice from the same store yields identical indexes.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass, field
import logging
import threading
import time
from types import MappingProxyType

from docs_site_search.config import SearchConfig, load_search_config
from docs_site_search.errors import BuildCancelledError, ConfigurationError
from docs_site_search.observability.tracing import create_span
from docs_site_search.search.analyzers import Analyzer
from docs_site_search.search.documents import Document, DocumentStore
from docs_site_search.search.models import Posting
from docs_site_search.search.schema import DEFAULT_SCHEMA, Schema
from docs_site_search.search.stats import FieldLengthStats, compute_field_length_stats


logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag checked by long-running builds."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise BuildCancelledError("Index build was cancelled")


@dataclass(frozen=True)
class InvertedIndex:
    """Immutable term -> postings mapping plus scoring statistics.

    The ``analyzer`` that produced the terms travels with the index; the query
    engine tokenizes queries with that same object.
    """

    doc_ids: tuple[Hashable, ...]
    postings: Mapping[str, tuple[Posting, ...]]
    field_lengths: Mapping[str, tuple[int, ...]]
    analyzer: Analyzer
    config: SearchConfig
    schema: Schema = field(default_factory=lambda: DEFAULT_SCHEMA)
    doc_frequency: Mapping[str, int] = field(init=False, repr=False)
    length_stats: Mapping[str, FieldLengthStats] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "postings", MappingProxyType(dict(self.postings)))
        object.__setattr__(self, "field_lengths", MappingProxyType(dict(self.field_lengths)))
        doc_frequency = {term: len({posting.doc for posting in entries}) for term, entries in self.postings.items()}
        object.__setattr__(self, "doc_frequency", MappingProxyType(doc_frequency))
        object.__setattr__(self, "length_stats", MappingProxyType(compute_field_length_stats(self.field_lengths)))

    @property
    def document_count(self) -> int:
        return len(self.doc_ids)

    @property
    def term_count(self) -> int:
        return len(self.postings)

    @property
    def fingerprint(self) -> str:
        return self.analyzer.fingerprint

    def __contains__(self, term: object) -> bool:
        return term in self.postings

    def terms(self) -> list[str]:
        return sorted(self.postings)

    def get_postings(self, term: str) -> tuple[Posting, ...]:
        return self.postings.get(term, ())

    def field_length(self, field_name: str, doc: int) -> int:
        lengths = self.field_lengths.get(field_name)
        if lengths is None:
            return 0
        return lengths[doc]


class IndexBuilder:
    """Accumulates term frequencies for documents and builds an index."""

    def __init__(
        self,
        config: SearchConfig | None = None,
        *,
        analyzer: Analyzer | None = None,
        schema: Schema | None = None,
    ) -> None:
        self.config = load_search_config(config)
        self.analyzer = _resolve_analyzer(self.config, analyzer)
        self.schema = schema or DEFAULT_SCHEMA
        self._field_names = self.schema.indexed_field_names
        self._counts: defaultdict[str, defaultdict[tuple[int, int], int]] = defaultdict(lambda: defaultdict(int))
        self._field_lengths: dict[str, list[int]] = {name: [] for name in self._field_names}
        self._doc_ids: list[Hashable] = []

    def add_document(self, document: Document) -> int:
        """Tokenize every indexed field of ``document``; return its position."""
        doc = len(self._doc_ids)
        self._doc_ids.append(document.id)
        for field_position, field_name in enumerate(self._field_names):
            schema_field = self.schema[field_name]
            length = 0
            for value in schema_field.values(getattr(document, field_name)):
                for term in self.analyzer.tokenize(value):
                    self._counts[term][(doc, field_position)] += 1
                    length += 1
            self._field_lengths[field_name].append(length)
        return doc

    def build(self) -> InvertedIndex:
        postings: dict[str, tuple[Posting, ...]] = {}
        for term, counts in self._counts.items():
            postings[term] = tuple(
                Posting(doc=doc, field=self._field_names[field_position], frequency=frequency)
                for (doc, field_position), frequency in sorted(counts.items())
            )
        return InvertedIndex(
            doc_ids=tuple(self._doc_ids),
            postings=postings,
            field_lengths={name: tuple(lengths) for name, lengths in self._field_lengths.items()},
            analyzer=self.analyzer,
            config=self.config,
            schema=self.schema,
        )


def build(
    store: DocumentStore | Iterable[Document],
    config: SearchConfig | None = None,
    *,
    analyzer: Analyzer | None = None,
    schema: Schema | None = None,
    cancel_token: CancellationToken | None = None,
) -> InvertedIndex:
    """Build an inverted index from a fully materialized document store.

    Raises:
        ConfigurationError: ``analyzer`` does not match ``config``.
        BuildCancelledError: ``cancel_token`` was cancelled before completion.
    """

    builder = IndexBuilder(config, analyzer=analyzer, schema=schema)
    started = time.perf_counter()
    with create_span("index.build") as span:
        for document in store:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()
            builder.add_document(document)
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        index = builder.build()
        span.set_attribute("index.documents", index.document_count)
        span.set_attribute("index.terms", index.term_count)

    logger.info(
        "Built index with %s documents and %s terms in %.2fms",
        index.document_count,
        index.term_count,
        (time.perf_counter() - started) * 1000,
    )
    return index


def _resolve_analyzer(config: SearchConfig, analyzer: Analyzer | None) -> Analyzer:
    expected = Analyzer.from_config(config)
    if analyzer is None:
        return expected
    if analyzer.fingerprint != expected.fingerprint:
        raise ConfigurationError(
            f"Analyzer {analyzer!r} does not match the tokenizer options of the search config",
            option="analyzer",
        )
    return analyzer
