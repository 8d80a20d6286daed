"""In-memory full-text search for static documentation sites."""

from docs_site_search.config import FieldWeights, RankingConfig, SearchConfig, load_search_config
from docs_site_search.errors import (
    BuildCancelledError,
    ConfigurationError,
    DuplicateDocumentError,
    IndexNotReadyError,
    QueryError,
    SearchError,
    SnapshotError,
    ValidationError,
)
from docs_site_search.search.analyzers import Analyzer, tokenize
from docs_site_search.search.documents import Document, DocumentStore, load
from docs_site_search.search.engine import QueryEngine, search
from docs_site_search.search.formatter import format_results
from docs_site_search.search.index import CancellationToken, InvertedIndex, build
from docs_site_search.search.models import Posting, RankedResult
from docs_site_search.search.site_search import SiteSearch


__all__ = [
    "Analyzer",
    "BuildCancelledError",
    "CancellationToken",
    "ConfigurationError",
    "Document",
    "DocumentStore",
    "DuplicateDocumentError",
    "FieldWeights",
    "IndexNotReadyError",
    "InvertedIndex",
    "Posting",
    "QueryEngine",
    "QueryError",
    "RankedResult",
    "RankingConfig",
    "SearchConfig",
    "SearchError",
    "SiteSearch",
    "SnapshotError",
    "ValidationError",
    "build",
    "format_results",
    "load",
    "load_search_config",
    "search",
    "tokenize",
]
