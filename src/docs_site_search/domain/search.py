"""Domain models for search results handed to the rendering layer.

Value objects are immutable (frozen=True) so a rendered result list can be
cached or shared between readers without copies.
"""

from pydantic import BaseModel, ConfigDict, Field


class SearchHit(BaseModel):
    """Display record for one ranked document."""

    model_config = ConfigDict(frozen=True)

    title: str
    excerpt: str
    url: str
    score: float = 0.0


class SearchResponse(BaseModel):
    """Value object for a complete search response."""

    model_config = ConfigDict(frozen=True)

    query: str
    results: list[SearchHit] = Field(default_factory=list)
    total_count: int = 0
    search_time_ms: float | None = None
