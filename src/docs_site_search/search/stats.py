"""Statistical helpers for tf/idf style scoring.

The functions here stay independent of the index layout so they can be unit
tested on their own. Every constant that shapes ranking is a parameter; the
defaults come from ``RankingConfig``.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import math


# Documents longer than this multiple of the field average are scored as if
# they were exactly this long.
MAX_LENGTH_RATIO = 4.0


@dataclass(frozen=True)
class FieldLengthStats:
    """Aggregated term counts for one field across documents that use it."""

    field: str
    total_terms: int
    document_count: int

    @property
    def average_length(self) -> float:
        if self.document_count == 0:
            return 0.0
        return self.total_terms / self.document_count


def compute_field_length_stats(field_lengths: Mapping[str, Sequence[int]]) -> dict[str, FieldLengthStats]:
    """Return aggregate stats for each field given per-document lengths.

    Documents with an empty field (length 0) do not count towards the average.
    """

    stats: dict[str, FieldLengthStats] = {}
    for field_name, lengths in field_lengths.items():
        populated = [length for length in lengths if length > 0]
        stats[field_name] = FieldLengthStats(
            field=field_name,
            total_terms=sum(populated),
            document_count=len(populated),
        )
    return stats


def calculate_idf(doc_freq: int, total_docs: int) -> float:
    """Return ``ln(1 + N / df)``.

    Strictly decreasing in ``doc_freq`` and always positive for a term that
    occurs somewhere, so rarer terms always weigh more.
    """

    if total_docs <= 0 or doc_freq <= 0:
        return 0.0
    df = min(doc_freq, total_docs)
    return math.log1p(total_docs / df)


def bm25_tf(tf: int, doc_length: int, avg_doc_length: float, *, k1: float = 1.2, b: float = 0.75) -> float:
    """Compute the BM25 saturated term frequency for one field.

    Strictly increasing in ``tf`` for ``k1 > 0``; with ``k1 == 0`` every match
    counts once. The length ratio is capped at ``MAX_LENGTH_RATIO`` so very
    long excerpts are not buried.
    """

    if tf <= 0:
        return 0.0
    if k1 == 0:
        return 1.0
    raw_ratio = doc_length / avg_doc_length if avg_doc_length > 0 else 1.0
    normalized_length = min(raw_ratio, MAX_LENGTH_RATIO)
    denominator = tf + k1 * (1 - b + b * normalized_length)
    return (tf * (k1 + 1)) / denominator
