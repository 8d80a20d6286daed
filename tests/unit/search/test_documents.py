"""Unit tests for the document store adapter."""

import pytest

from docs_site_search.errors import DuplicateDocumentError, ValidationError
from docs_site_search.search.documents import (
    Document,
    DocumentStore,
    load,
    normalize_record,
    parse_lunr_store,
    read_lunr_store,
)


class TestLoad:
    def test_preserves_feed_order(self, sample_records):
        store = load(sample_records)

        assert len(store) == 3
        assert store.ids == (1, 2, 3)
        assert [document.id for document in store] == [1, 2, 3]
        assert store[1].title == "CPP Learnings"

    def test_normalizes_missing_fields(self):
        store = load([{"id": "a", "url": "/a.html"}])
        document = store.get("a")

        assert document == Document(
            id="a",
            title="",
            excerpt="",
            tags=frozenset(),
            categories=frozenset(),
            url="/a.html",
            teaser="",
        )

    def test_null_labels_become_empty_sets(self, sample_records):
        store = load(sample_records)
        assert store.get(3).categories == frozenset()

    def test_single_string_tag_is_one_tag(self):
        document = normalize_record({"id": 1, "url": "/x", "tags": "cpp", "categories": ["", None, " notes "]})
        assert document.tags == frozenset({"cpp"})
        assert document.categories == frozenset({"notes"})

    def test_unescapes_html_entities_in_text(self, sample_records):
        store = load(sample_records)
        assert store.get(2).excerpt == "CPP - Learnings & Notes about C++ pointers & references"

    def test_duplicate_id_names_the_id(self, sample_records):
        sample_records.append(dict(sample_records[0], url="/other.html"))

        with pytest.raises(DuplicateDocumentError) as exc_info:
            load(sample_records)

        assert exc_info.value.document_id == 1
        assert "1" in str(exc_info.value)
        assert isinstance(exc_info.value, ValidationError)

    @pytest.mark.parametrize(
        "record",
        [
            {"url": "/a"},
            {"id": None, "url": "/a"},
            {"id": "   ", "url": "/a"},
            {"id": True, "url": "/a"},
            {"id": ["a"], "url": "/a"},
        ],
    )
    def test_rejects_unusable_ids(self, record):
        with pytest.raises(ValidationError) as exc_info:
            load([record])
        assert exc_info.value.field == "id"

    @pytest.mark.parametrize("url", [None, "", "  ", 42])
    def test_rejects_missing_url(self, url):
        with pytest.raises(ValidationError) as exc_info:
            load([{"id": "post", "url": url}])
        assert exc_info.value.field == "url"
        assert exc_info.value.document_id == "post"

    @pytest.mark.parametrize(
        ("field_name", "value"),
        [
            ("tags", 5),
            ("tags", 3.5),
            ("categories", {"notes": True}),
            ("tags", ["cpp", ["nested"]]),
        ],
    )
    def test_rejects_malformed_labels(self, field_name, value):
        with pytest.raises(ValidationError) as exc_info:
            load([{"id": "x", "url": "/x", field_name: value}])
        assert exc_info.value.field == field_name
        assert exc_info.value.document_id == "x"

    def test_numeric_labels_are_kept_as_text(self):
        document = normalize_record({"id": 1, "url": "/x", "tags": ["cpp", 2024]})
        assert document.tags == frozenset({"cpp", "2024"})

    def test_rejects_non_mapping_records(self):
        with pytest.raises(ValidationError, match="not a mapping"):
            load([["id", 1]])

    def test_failure_is_raised_before_returning_a_store(self, sample_records):
        sample_records.insert(1, {"id": 9})
        with pytest.raises(ValidationError):
            load(sample_records)


class TestDocumentStore:
    def test_lookup_helpers(self, sample_store):
        assert 2 in sample_store
        assert 9 not in sample_store
        assert ["unhashable"] not in sample_store
        assert sample_store.get(9) is None
        assert sample_store.index_of(3) == 2

    def test_index_of_unknown_id_raises_key_error(self, sample_store):
        with pytest.raises(KeyError, match="Unknown document id"):
            sample_store.index_of("missing")

    def test_constructor_rejects_duplicate_documents(self, sample_store):
        with pytest.raises(DuplicateDocumentError):
            DocumentStore([sample_store[0], sample_store[0]])

    def test_document_to_dict_sorts_labels(self):
        document = normalize_record({"id": 1, "url": "/x", "tags": ["b", "a"]})
        assert document.to_dict()["tags"] == ["a", "b"]


class TestLunrFeed:
    def test_parses_var_assignment_and_assigns_url_ids(self, lunr_feed):
        records = read_lunr_store(lunr_feed)

        assert [record["id"] for record in records] == [record["url"] for record in records]
        store = load(records)
        assert store.get("/notes/2025/10/15/cpplearnings.html").title == "CPP Learnings"

    def test_accepts_plain_json_array_and_keeps_ids(self):
        records = parse_lunr_store(b'[{"id": 7, "url": "/a"}]')
        assert records == [{"id": 7, "url": "/a"}]

    def test_rejects_invalid_json(self):
        with pytest.raises(ValidationError, match="not valid JSON"):
            parse_lunr_store("var store = [{oops}];")

    def test_rejects_non_array_payload(self):
        with pytest.raises(ValidationError, match="must be an array"):
            parse_lunr_store('const store = {"a": 1}')
