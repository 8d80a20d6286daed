"""Domain value objects shared with the rendering layer."""

from docs_site_search.domain.search import SearchHit, SearchResponse


__all__ = ["SearchHit", "SearchResponse"]
