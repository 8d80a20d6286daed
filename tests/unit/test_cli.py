"""Unit tests for the docs-site-search command line."""

import orjson
import pytest

from docs_site_search import cli


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch, tmp_path, restore_root_logger):
    monkeypatch.chdir(tmp_path)
    for name in ("FEED_PATH", "SNAPSHOT_PATH", "RESULT_LIMIT", "LOG_LEVEL", "LOG_JSON"):
        monkeypatch.delenv(f"DOCS_SITE_SEARCH_{name}", raising=False)


def _stdout_json(capsys):
    return orjson.loads(capsys.readouterr().out)


def test_index_builds_and_writes_snapshot(lunr_feed, tmp_path, capsys):
    snapshot = tmp_path / "out" / "index.json"

    exit_code = cli.main(["index", str(lunr_feed), "--snapshot", str(snapshot)])

    assert exit_code == 0
    summary = _stdout_json(capsys)
    assert summary["documents"] == 3
    assert summary["terms"] > 0
    assert summary["snapshot"] == str(snapshot)
    assert snapshot.exists()


def test_search_from_feed_prints_display_records(lunr_feed, capsys):
    assert cli.main(["search", "cpp", "--feed", str(lunr_feed)]) == 0

    response = _stdout_json(capsys)
    assert response["query"] == "cpp"
    assert [hit["title"] for hit in response["results"]] == ["CPP Learnings", "Build Systems"]
    assert response["total_count"] == 2


def test_search_raw_prints_document_ids(lunr_feed, capsys):
    assert cli.main(["search", "column", "--feed", str(lunr_feed), "--raw"]) == 0

    results = _stdout_json(capsys)
    assert [result["documentId"] for result in results] == ["/notes/2025/10/01/column-store.html"]
    assert results[0]["score"] > 0


def test_search_snapshot_with_match_mode_and_limit(lunr_feed, tmp_path, capsys):
    snapshot = tmp_path / "index.json"
    assert cli.main(["index", str(lunr_feed), "--snapshot", str(snapshot)]) == 0
    capsys.readouterr()

    assert cli.main(["search", "cpp notes", "--snapshot", str(snapshot), "--match-mode", "all", "--raw"]) == 0
    assert [result["documentId"] for result in _stdout_json(capsys)] == ["/notes/2025/10/15/cpplearnings.html"]

    assert cli.main(["search", "cpp", "--snapshot", str(snapshot), "--limit", "1", "--raw"]) == 0
    assert len(_stdout_json(capsys)) == 1


def test_search_uses_feed_from_environment(lunr_feed, monkeypatch, capsys):
    monkeypatch.setenv("DOCS_SITE_SEARCH_FEED_PATH", str(lunr_feed))

    assert cli.main(["search", "column", "--raw"]) == 0
    assert len(_stdout_json(capsys)) == 1


def test_search_without_source_is_rejected(capsys):
    assert cli.main(["search", "cpp"]) == 2
    assert capsys.readouterr().out == ""


def test_inspect_summarizes_snapshot(lunr_feed, tmp_path, capsys):
    snapshot = tmp_path / "index.json"
    cli.main(["index", str(lunr_feed), "--snapshot", str(snapshot)])
    capsys.readouterr()

    assert cli.main(["inspect", "--snapshot", str(snapshot)]) == 0

    summary = _stdout_json(capsys)
    assert summary["documents"] == 3
    assert summary["options"]["matchMode"] == "any"
    assert summary["urls"][0] == "/notes/2025/10/01/column-store.html"


def test_duplicate_documents_exit_with_validation_code(tmp_path):
    feed = tmp_path / "dupes.json"
    feed.write_bytes(orjson.dumps([{"url": "/a", "title": "A"}, {"url": "/a", "title": "B"}]))

    assert cli.main(["index", str(feed)]) == 2


def test_invalid_options_file_exits_with_validation_code(lunr_feed, tmp_path):
    options = tmp_path / "options.json"
    options.write_bytes(orjson.dumps({"fieldWeights": {"title": -1}}))

    assert cli.main(["--options", str(options), "index", str(lunr_feed)]) == 2


def test_options_file_applies_tokenizer_settings(lunr_feed, tmp_path, capsys):
    options = tmp_path / "options.json"
    options.write_bytes(orjson.dumps({"minTokenLength": 4}))

    assert cli.main(["--options", str(options), "search", "cpp", "--feed", str(lunr_feed), "--raw"]) == 0
    assert _stdout_json(capsys) == []


def test_fingerprint_mismatch_exits_with_validation_code(lunr_feed, tmp_path):
    snapshot = tmp_path / "index.json"
    cli.main(["index", str(lunr_feed), "--snapshot", str(snapshot)])
    options = tmp_path / "options.json"
    options.write_bytes(orjson.dumps({"stemmer": "porter"}))

    assert cli.main(["--options", str(options), "inspect", "--snapshot", str(snapshot)]) == 2


def test_missing_feed_exits_with_io_code(tmp_path):
    assert cli.main(["index", str(tmp_path / "missing.js")]) == 1
