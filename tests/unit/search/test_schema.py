"""Unit tests for the document schema."""

import pytest

from docs_site_search.config import FieldWeights
from docs_site_search.search.schema import (
    DEFAULT_SCHEMA,
    FieldType,
    KeywordField,
    Schema,
    StoredField,
    TextField,
)


def test_default_schema_indexes_text_and_keyword_fields():
    assert DEFAULT_SCHEMA.indexed_field_names == ("title", "excerpt", "tags", "categories")
    assert DEFAULT_SCHEMA["url"].field_type is FieldType.STORED
    assert DEFAULT_SCHEMA.position_of("tags") == 2


def test_keyword_field_yields_sorted_entries():
    assert KeywordField("tags").values(frozenset({"perf", "cpp"})) == ["cpp", "perf"]
    assert KeywordField("tags").values("cpp") == ["cpp"]
    assert KeywordField("tags").values(None) == []


def test_text_and_stored_field_values():
    assert TextField("title").values("Hello") == ["Hello"]
    assert TextField("title").values("") == []
    assert StoredField("url").values("/a.html") == []
    assert StoredField("url").indexed is False


def test_get_weight_reads_field_weights():
    weights = FieldWeights(title=5.0)
    assert DEFAULT_SCHEMA.get_weight("title", weights) == 5.0
    assert DEFAULT_SCHEMA.get_weight("categories", weights) == 1.5
    assert DEFAULT_SCHEMA.get_weight("url", weights) == 0.0
    assert DEFAULT_SCHEMA.get_weight("unknown", weights) == 0.0


def test_schema_rejects_duplicate_names():
    with pytest.raises(ValueError, match="unique"):
        Schema(fields=[TextField("title"), KeywordField("title")])


def test_schema_to_dict():
    data = Schema(fields=[TextField("title"), StoredField("url")]).to_dict()
    assert data == {
        "unique_field": "id",
        "fields": [
            {"name": "title", "type": "text", "indexed": True},
            {"name": "url", "type": "stored", "indexed": False},
        ],
    }
