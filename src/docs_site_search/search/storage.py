"""JSON snapshots of a built index for faster cold starts.

A snapshot holds the document store, the postings arena and the search
options in one minified orjson payload with short keys::

    {"v": 1, "f": <analyzer fingerprint>, "c": <options>, "d": [documents],
     "p": {term: [[doc, field, tf], ...]}, "l": {field: [lengths]}}

Everything stored is an integer count or a string, so a reloaded index scores
every query exactly like the one that was saved. Document ids must be ``str``
or ``int`` for the same reason; other ids are refused when saving. Loading rejects snapshots
whose analyzer fingerprint differs from the requested options, because
querying with a different tokenizer silently breaks recall.
"""

from __future__ import annotations

from collections.abc import Mapping
import logging
from pathlib import Path
from typing import Any, cast

import orjson

from docs_site_search.config import SearchConfig, load_search_config
from docs_site_search.errors import ConfigurationError, SnapshotError, ValidationError
from docs_site_search.observability.tracing import create_span
from docs_site_search.search.analyzers import STEMMER_NAMES, Analyzer
from docs_site_search.search.documents import Document, DocumentStore
from docs_site_search.search.index import InvertedIndex
from docs_site_search.search.models import Posting
from docs_site_search.search.schema import DEFAULT_SCHEMA


logger = logging.getLogger(__name__)

SNAPSHOT_FORMAT_VERSION = 1


def snapshot_payload(store: DocumentStore, index: InvertedIndex) -> dict[str, Any]:
    """Return the serializable form of a store/index pair."""

    if store.ids != index.doc_ids:
        raise SnapshotError("Index was not built from the given document store")
    for document_id in store.ids:
        if type(document_id) not in (str, int):
            raise SnapshotError(
                f"Document id {document_id!r} of type {type(document_id).__name__} cannot be snapshotted; "
                "snapshots support str and int ids"
            )
    return {
        "v": SNAPSHOT_FORMAT_VERSION,
        "f": index.fingerprint,
        "c": _config_to_dict(index.config),
        "d": [document.to_dict() for document in store],
        "p": {term: [posting.to_list() for posting in postings] for term, postings in index.postings.items()},
        "l": {field_name: list(lengths) for field_name, lengths in index.field_lengths.items()},
    }


def restore_snapshot(
    payload: Mapping[str, Any],
    config: SearchConfig | None = None,
) -> tuple[DocumentStore, InvertedIndex]:
    """Rebuild the store/index pair from ``snapshot_payload`` output."""

    version = payload.get("v")
    if version != SNAPSHOT_FORMAT_VERSION:
        raise SnapshotError(f"Unsupported snapshot format version: {version!r}")

    resolved = config if config is not None else _config_from_dict(payload.get("c") or {})
    analyzer = Analyzer.from_config(resolved)
    if analyzer.fingerprint != payload.get("f"):
        raise SnapshotError(
            "Snapshot was built with different tokenizer options "
            f"(snapshot {payload.get('f')!r}, requested {analyzer.fingerprint!r})"
        )

    try:
        store = DocumentStore([_document_from_dict(entry) for entry in payload.get("d") or []])
    except (ValidationError, KeyError, TypeError) as exc:
        raise SnapshotError(f"Snapshot documents are invalid: {exc!r}") from exc

    postings = {
        str(term): tuple(Posting.from_list(entry) for entry in entries)
        for term, entries in (payload.get("p") or {}).items()
    }
    field_lengths = {
        str(name): tuple(int(length) for length in lengths) for name, lengths in (payload.get("l") or {}).items()
    }
    for name, lengths in field_lengths.items():
        if len(lengths) != len(store):
            raise SnapshotError(f"Field length table '{name}' does not match the document count")

    index = InvertedIndex(
        doc_ids=store.ids,
        postings=postings,
        field_lengths=field_lengths,
        analyzer=analyzer,
        config=resolved,
        schema=DEFAULT_SCHEMA,
    )
    return store, index


class JsonIndexStore:
    """Persist a single index snapshot as a minified JSON file."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def save(self, store: DocumentStore, index: InvertedIndex) -> Path:
        """Write the snapshot atomically and return its path."""

        with create_span("index.snapshot.save", attributes={"snapshot.path": str(self.path)}):
            payload = snapshot_payload(store, index)
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._atomic_write(orjson.dumps(payload))
        logger.info("Saved index snapshot with %s documents to %s", len(store), self.path)
        return self.path

    def load(self, config: SearchConfig | None = None) -> tuple[DocumentStore, InvertedIndex]:
        """Load the snapshot; ``config`` must match the tokenizer it was built with."""

        if not self.path.exists():
            raise SnapshotError(f"Snapshot not found: {self.path}")
        with create_span("index.snapshot.load", attributes={"snapshot.path": str(self.path)}):
            try:
                payload = cast("dict[str, Any]", orjson.loads(self.path.read_bytes()))
            except orjson.JSONDecodeError as exc:
                raise SnapshotError(f"Snapshot {self.path} is not valid JSON: {exc}") from exc
            if not isinstance(payload, dict):
                raise SnapshotError(f"Snapshot {self.path} does not contain an object")
            store, index = restore_snapshot(payload, config)
        logger.info("Loaded index snapshot with %s documents from %s", len(store), self.path)
        return store, index

    def _atomic_write(self, data: bytes) -> None:
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        tmp_path.write_bytes(data)
        tmp_path.replace(self.path)


def _config_to_dict(config: SearchConfig) -> dict[str, Any]:
    data = config.model_dump(mode="json", by_alias=True, exclude={"stemmer"})
    data["stopWords"] = sorted(config.stop_words)
    stemmer = config.stemmer
    if stemmer is None or isinstance(stemmer, str):
        data["stemmer"] = stemmer
    else:
        data["stemmer"] = None
        module = getattr(stemmer, "__module__", "")
        data["customStemmer"] = f"{module}:{getattr(stemmer, '__qualname__', repr(stemmer))}"
    return data


def _config_from_dict(data: Mapping[str, Any]) -> SearchConfig:
    options = dict(data)
    custom = options.pop("customStemmer", None)
    if custom:
        raise SnapshotError(f"Snapshot uses the custom stemmer {custom}; pass a config providing it")
    stemmer = options.get("stemmer")
    if stemmer is not None and stemmer not in STEMMER_NAMES:
        raise SnapshotError(f"Snapshot references unknown stemmer {stemmer!r}")
    try:
        return load_search_config(options)
    except ConfigurationError as exc:
        raise SnapshotError(f"Snapshot options are invalid: {exc}") from exc


def _document_from_dict(data: Mapping[str, Any]) -> Document:
    document_id = data["id"]
    if type(document_id) not in (str, int):
        raise ValidationError(f"Snapshot document id must be str or int, got {document_id!r}", field="id")
    return Document(
        id=document_id,
        title=str(data.get("title", "")),
        excerpt=str(data.get("excerpt", "")),
        tags=frozenset(data.get("tags") or ()),
        categories=frozenset(data.get("categories") or ()),
        url=str(data["url"]),
        teaser=str(data.get("teaser", "")),
    )
