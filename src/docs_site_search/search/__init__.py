"""
Search indexing and query engine package.

This package provides a pure-Python search stack:
- analyzers: Tokenizer and filters (lowercase, min length, stop words, stemming)
- documents: Document store adapter for the site's search feed
- schema: Indexed field definitions
- index: Inverted index construction
- stats: tf/idf scoring statistics
- engine: Ranked query evaluation
- formatter: Ranked ids to display records
- storage: JSON index snapshots
- site_search: Readiness and atomic rebuilds for a live session
"""
