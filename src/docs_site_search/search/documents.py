"""Document store adapter.

Turns the site generator's feed of raw post descriptors into an immutable,
ordered ``DocumentStore``. Validation happens up front so a malformed feed
fails the build before any index work starts, and missing fields are
normalized to empty values so tokenization downstream never sees ``None``.

The feed usually comes from the generated ``lunr-store.js`` asset::

    var store = [{
        "title": "CPP Learnings",
        "excerpt": "CPP - Learnings &amp; Notes ...",
        "categories": ["notes"],
        "tags": ["cpp"],
        "url": "/notes/2025/10/15/cpplearnings.html",
        "teaser": null
    }]

Those entries carry no ``id``; ``parse_lunr_store`` uses the permalink,
which stays stable across rebuilds.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
import html
import logging
from pathlib import Path
import re
from typing import Any

import orjson

from docs_site_search.errors import DuplicateDocumentError, ValidationError


logger = logging.getLogger(__name__)

_LUNR_PREFIX = re.compile(r"^\s*(?:var|let|const)\s+\w+\s*=\s*")


@dataclass(frozen=True, slots=True)
class Document:
    """A single indexable page. Never holds ``None`` values."""

    id: Hashable
    title: str
    excerpt: str
    tags: frozenset[str]
    categories: frozenset[str]
    url: str
    teaser: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "excerpt": self.excerpt,
            "tags": sorted(self.tags),
            "categories": sorted(self.categories),
            "url": self.url,
            "teaser": self.teaser,
        }


class DocumentStore:
    """Ordered, read-only collection of documents for one index build.

    The insertion position of each document is its integer index in the
    inverted index arena and the final tie-breaker when ranking.
    """

    __slots__ = ("_documents", "_positions")

    def __init__(self, documents: Sequence[Document] = ()) -> None:
        positions: dict[Hashable, int] = {}
        for position, document in enumerate(documents):
            if document.id in positions:
                raise DuplicateDocumentError(document.id)
            positions[document.id] = position
        self._documents: tuple[Document, ...] = tuple(documents)
        self._positions = positions

    def __len__(self) -> int:
        return len(self._documents)

    def __iter__(self) -> Iterator[Document]:
        return iter(self._documents)

    def __getitem__(self, position: int) -> Document:
        return self._documents[position]

    def __contains__(self, document_id: object) -> bool:
        try:
            return document_id in self._positions
        except TypeError:
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DocumentStore):
            return NotImplemented
        return self._documents == other._documents

    def __repr__(self) -> str:
        return f"DocumentStore(documents={len(self._documents)})"

    @property
    def ids(self) -> tuple[Hashable, ...]:
        return tuple(document.id for document in self._documents)

    def get(self, document_id: Hashable) -> Document | None:
        position = self._positions.get(document_id)
        if position is None:
            return None
        return self._documents[position]

    def index_of(self, document_id: Hashable) -> int:
        try:
            return self._positions[document_id]
        except KeyError:
            raise KeyError(f"Unknown document id: {document_id!r}") from None


def load(records: Iterable[Mapping[str, Any]]) -> DocumentStore:
    """Validate raw descriptors and return a fully materialized store.

    Raises:
        ValidationError: a record is not a mapping, or lacks a usable ``id``/``url``.
        DuplicateDocumentError: two records share an ``id``.
    """

    documents: list[Document] = []
    seen: set[Hashable] = set()
    for position, record in enumerate(records):
        document = normalize_record(record, position=position)
        if document.id in seen:
            raise DuplicateDocumentError(document.id)
        seen.add(document.id)
        documents.append(document)
    logger.debug("Loaded %s documents into store", len(documents))
    return DocumentStore(documents)


def normalize_record(record: Any, *, position: int = 0) -> Document:
    """Convert one raw descriptor into a ``Document``."""

    if not isinstance(record, Mapping):
        raise ValidationError(f"Record #{position} is not a mapping: {type(record).__name__}")

    document_id = _require_id(record, position)
    url = record.get("url")
    if not isinstance(url, str) or not url.strip():
        raise ValidationError(
            f"Document {document_id!r} has no url",
            document_id=document_id,
            field="url",
        )

    return Document(
        id=document_id,
        title=_normalize_text(record.get("title")),
        excerpt=_normalize_text(record.get("excerpt")),
        tags=_normalize_labels(record.get("tags"), document_id=document_id, field_name="tags"),
        categories=_normalize_labels(record.get("categories"), document_id=document_id, field_name="categories"),
        url=url.strip(),
        teaser=_normalize_text(record.get("teaser"), unescape=False),
    )


def _require_id(record: Mapping[str, Any], position: int) -> Hashable:
    if "id" not in record:
        raise ValidationError(f"Record #{position} is missing an id", field="id")
    value = record["id"]
    if value is None or isinstance(value, bool):
        raise ValidationError(f"Record #{position} has an invalid id: {value!r}", field="id")
    if isinstance(value, str):
        if not value.strip():
            raise ValidationError(f"Record #{position} has an empty id", field="id")
        return value
    if not isinstance(value, Hashable):
        raise ValidationError(f"Record #{position} has an unhashable id: {value!r}", field="id")
    return value


def _normalize_text(value: Any, *, unescape: bool = True) -> str:
    if value is None:
        return ""
    text = value if isinstance(value, str) else str(value)
    if unescape:
        text = html.unescape(text)
    return text.strip()


def _normalize_labels(value: Any, *, document_id: Hashable, field_name: str) -> frozenset[str]:
    """Accept a single label string or a list of scalar labels."""
    if value is None:
        return frozenset()
    if isinstance(value, str):
        entries: Iterable[Any] = [value]
    elif isinstance(value, (list, tuple, set, frozenset)):
        entries = value
    else:
        raise ValidationError(
            f"Document {document_id!r} has invalid {field_name}: expected a string or a list, "
            f"got {type(value).__name__}",
            document_id=document_id,
            field=field_name,
        )
    labels: set[str] = set()
    for entry in entries:
        if entry is None:
            continue
        if not isinstance(entry, (str, int, float)):
            raise ValidationError(
                f"Document {document_id!r} has a non-scalar {field_name} entry: {entry!r}",
                document_id=document_id,
                field=field_name,
            )
        label = str(entry).strip()
        if label:
            labels.add(label)
    return frozenset(labels)


def parse_lunr_store(payload: str | bytes) -> list[dict[str, Any]]:
    """Parse a ``var store = [...]`` asset (or a bare JSON array) into records.

    Records without an ``id`` get their ``url`` as id.
    """

    text = payload.decode("utf-8") if isinstance(payload, bytes) else payload
    body = _LUNR_PREFIX.sub("", text, count=1).strip()
    if body.endswith(";"):
        body = body[:-1].rstrip()
    try:
        data = orjson.loads(body)
    except orjson.JSONDecodeError as exc:
        raise ValidationError(f"Document store feed is not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise ValidationError(f"Document store feed must be an array, got {type(data).__name__}")

    records: list[dict[str, Any]] = []
    for entry in data:
        if isinstance(entry, dict) and "id" not in entry and entry.get("url"):
            entry = {"id": entry["url"], **entry}
        records.append(entry)
    return records


def read_lunr_store(path: str | Path) -> list[dict[str, Any]]:
    """Read and parse a document store feed from disk."""

    feed_path = Path(path)
    logger.info("Reading document store feed %s", feed_path)
    return parse_lunr_store(feed_path.read_bytes())
