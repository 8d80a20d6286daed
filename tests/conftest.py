"""Shared test fixtures and configuration."""

import logging

import orjson
import pytest

from docs_site_search.search.documents import load
from docs_site_search.search.index import build


SAMPLE_RECORDS = [
    {
        "id": 1,
        "title": "Column Store (SoA)",
        "excerpt": "Struct of arrays layout for cache friendly iteration",
        "tags": ["performance"],
        "categories": ["notes"],
        "url": "/notes/2025/10/01/column-store.html",
        "teaser": None,
    },
    {
        "id": 2,
        "title": "CPP Learnings",
        "excerpt": "CPP - Learnings &amp; Notes about C++ pointers &amp; references",
        "tags": ["cpp"],
        "categories": ["notes"],
        "url": "/notes/2025/10/15/cpplearnings.html",
        "teaser": None,
    },
    {
        "id": 3,
        "title": "Build Systems",
        "excerpt": "Using cmake with cpp projects",
        "tags": ["tooling"],
        "categories": None,
        "url": "/notes/2025/11/02/build-systems.html",
    },
]


@pytest.fixture
def sample_records():
    return [dict(record) for record in SAMPLE_RECORDS]


@pytest.fixture
def sample_store(sample_records):
    return load(sample_records)


@pytest.fixture
def sample_index(sample_store):
    return build(sample_store)


@pytest.fixture
def lunr_feed(tmp_path):
    """A ``lunr-store.js`` asset as emitted by the site generator (no ids)."""
    entries = [{key: value for key, value in record.items() if key != "id"} for record in SAMPLE_RECORDS]
    path = tmp_path / "lunr-store.js"
    path.write_text("var store = " + orjson.dumps(entries).decode("utf-8") + ";\n", encoding="utf-8")
    return path


@pytest.fixture
def restore_root_logger():
    """Undo handler changes made by ``configure_logging``."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)
