"""Search data models."""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class Posting:
    """A term occurrence count for one field of one document.

    ``doc`` is the integer position of the document in the store, not its id,
    so postings never hold references back to document objects.
    """

    doc: int
    field: str
    frequency: int

    def to_list(self) -> list[Any]:
        """Compact form used by index snapshots."""
        return [self.doc, self.field, self.frequency]

    @classmethod
    def from_list(cls, data: Sequence[Any]) -> Posting:
        doc, field_name, frequency = data
        return cls(doc=int(doc), field=str(field_name), frequency=int(frequency))


@dataclass(frozen=True, slots=True)
class RankedResult:
    """A scored document produced by the query engine."""

    document_id: Hashable
    score: float

    def to_dict(self) -> dict[str, Any]:
        return {"documentId": self.document_id, "score": self.score}
