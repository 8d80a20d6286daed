"""
Schema definition for document indexing.

Describes which document fields are indexed and how their values are fed to
the analyzer, inspired by Whoosh's schema module:
- TextField: a single analyzed string (title, excerpt)
- KeywordField: a set of short strings analyzed entry by entry (tags, categories)
- StoredField: kept on the document for display, never indexed (url, teaser)

Field weights are not part of the schema; they come from
``SearchConfig.field_weights`` so they can be tuned without rebuilding.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any


if TYPE_CHECKING:
    from docs_site_search.config import FieldWeights


class FieldType(str, Enum):
    """Types of fields supported in the schema."""

    TEXT = "text"
    KEYWORD = "keyword"
    STORED = "stored"


@dataclass(frozen=True)
class SchemaField(ABC):
    """Base class for all schema fields."""

    name: str
    indexed: bool = True

    @property
    @abstractmethod
    def field_type(self) -> FieldType:
        """Return the field type."""

    def values(self, value: Any) -> list[str]:
        """Return the strings fed to the analyzer for ``value``."""
        if not value:
            return []
        return [str(value)]

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.field_type.value, "indexed": self.indexed}


@dataclass(frozen=True)
class TextField(SchemaField):
    """Analyzed single-valued text field (title, excerpt)."""

    @property
    def field_type(self) -> FieldType:
        return FieldType.TEXT


@dataclass(frozen=True)
class KeywordField(SchemaField):
    """
    Multi-valued field of short labels (tags, categories).

    Entries are analyzed one at a time in sorted order so a set-valued field
    always produces the same term sequence.
    """

    @property
    def field_type(self) -> FieldType:
        return FieldType.KEYWORD

    def values(self, value: Any) -> list[str]:
        if not value:
            return []
        if isinstance(value, str):
            return [value]
        return sorted(str(entry) for entry in value)


@dataclass(frozen=True)
class StoredField(SchemaField):
    """Stored-only field (not indexed)."""

    indexed: bool = field(default=False, init=False)

    @property
    def field_type(self) -> FieldType:
        return FieldType.STORED

    def values(self, value: Any) -> list[str]:
        return []


@dataclass
class Schema:
    """
    Ordered field layout of an index.

    Field order is significant: postings of one term are ordered by document
    index, then by schema position.

    Example:
        schema = Schema(
            fields=[
                TextField("title"),
                TextField("excerpt"),
                KeywordField("tags"),
                StoredField("url"),
            ],
        )
    """

    fields: list[SchemaField]
    unique_field: str = "id"

    def __post_init__(self) -> None:
        self._field_map: dict[str, SchemaField] = {f.name: f for f in self.fields}
        if len(self._field_map) != len(self.fields):
            raise ValueError("Schema field names must be unique")

    def __getitem__(self, name: str) -> SchemaField:
        return self._field_map[name]

    def __contains__(self, name: str) -> bool:
        return name in self._field_map

    def __iter__(self) -> Iterator[SchemaField]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    @property
    def indexed_fields(self) -> list[SchemaField]:
        return [f for f in self.fields if f.indexed]

    @property
    def indexed_field_names(self) -> tuple[str, ...]:
        return tuple(f.name for f in self.indexed_fields)

    def position_of(self, name: str) -> int:
        return self.indexed_field_names.index(name)

    def get_weight(self, field_name: str, weights: FieldWeights) -> float:
        """Return the configured weight for an indexed field."""
        if field_name not in self._field_map or not self._field_map[field_name].indexed:
            return 0.0
        return weights.for_field(field_name)

    def to_dict(self) -> dict[str, Any]:
        return {"unique_field": self.unique_field, "fields": [f.to_dict() for f in self.fields]}


def create_default_schema() -> Schema:
    """
    Create the schema of a site document store entry.

    Fields:
    - title: Post title (text)
    - excerpt: Generated post excerpt (text)
    - tags: Post tags (keyword)
    - categories: Post categories (keyword)
    - url: Permalink (stored only)
    - teaser: Teaser image path (stored only)
    """
    return Schema(
        unique_field="id",
        fields=[
            TextField("title"),
            TextField("excerpt"),
            KeywordField("tags"),
            KeywordField("categories"),
            StoredField("url"),
            StoredField("teaser"),
        ],
    )


DEFAULT_SCHEMA = create_default_schema()
