"""Unit tests for the session-level search holder."""

import asyncio
import threading

import pytest

from docs_site_search.errors import (
    BuildCancelledError,
    ConfigurationError,
    DuplicateDocumentError,
    IndexNotReadyError,
    QueryError,
)
from docs_site_search.search.index import CancellationToken
from docs_site_search.search.site_search import SiteSearch


def _ids(results):
    return [result.document_id for result in results]


@pytest.fixture
def site():
    return SiteSearch(site="test")


class TestReadiness:
    def test_queries_before_first_build_raise(self, site):
        assert not site.is_ready
        assert site.wait_ready(timeout=0) is False
        with pytest.raises(IndexNotReadyError):
            site.search("cpp")
        with pytest.raises(IndexNotReadyError):
            site.search_hits("cpp")

    def test_rebuild_publishes_index(self, site, sample_records):
        result = site.rebuild(sample_records)

        assert site.is_ready
        assert site.wait_ready(timeout=0) is True
        assert result.documents_indexed == 3
        assert result.terms_indexed == site.snapshot.index.term_count
        assert result.duration_ms >= 0
        assert _ids(site.search("cpp")) == [2, 3]

    def test_waiting_thread_wakes_after_build(self, site, sample_records):
        woke = []
        waiter = threading.Thread(target=lambda: woke.append(site.wait_ready(timeout=5)))
        waiter.start()

        site.rebuild(sample_records)
        waiter.join(timeout=5)

        assert woke == [True]


class TestRebuild:
    def test_failed_rebuild_keeps_previous_index(self, site, sample_records):
        site.rebuild(sample_records)
        before = site.snapshot

        broken = [*sample_records, dict(sample_records[0])]
        with pytest.raises(DuplicateDocumentError):
            site.rebuild(broken)

        assert site.snapshot is before
        assert _ids(site.search("column")) == [1]

    def test_cancelled_rebuild_keeps_previous_index(self, site, sample_records):
        site.rebuild(sample_records)
        before = site.snapshot
        token = CancellationToken()
        token.cancel()

        with pytest.raises(BuildCancelledError):
            site.rebuild([{"id": "new", "title": "Rust", "url": "/rust"}], cancel_token=token)

        assert site.snapshot is before
        assert site.search("rust") == []

    def test_rebuild_swaps_to_new_content(self, site, sample_records):
        site.rebuild(sample_records)
        old_snapshot = site.snapshot

        site.rebuild([{"id": "new", "title": "Rust Ownership", "url": "/rust"}])

        assert _ids(site.search("rust")) == ["new"]
        assert site.search("cpp") == []
        assert _ids(old_snapshot.engine.search("cpp")) == [2, 3]

    def test_rebuild_of_unchanged_store_is_idempotent(self, site, sample_records):
        queries = ["cpp", "notes", "column store", "cache"]
        site.rebuild(sample_records)
        first = [site.search(query) for query in queries]

        site.rebuild(sample_records)

        assert [site.search(query) for query in queries] == first


def test_invalid_options_are_rejected_before_any_build():
    with pytest.raises(ConfigurationError):
        SiteSearch({"matchMode": "some"})


def test_search_hits_and_response(site, sample_records):
    site.rebuild(sample_records)

    hits = site.search_hits("cpp", limit=1)
    response = site.search_response("column")

    assert [hit.title for hit in hits] == ["CPP Learnings"]
    assert response.total_count == 1
    assert response.results[0].url == "/notes/2025/10/01/column-store.html"
    assert response.search_time_ms is not None


def test_query_errors_propagate(site, sample_records):
    site.rebuild(sample_records)
    with pytest.raises(QueryError):
        site.search(123)


def test_snapshot_save_and_load(tmp_path, site, sample_records):
    site.rebuild(sample_records)
    path = site.save_snapshot(tmp_path / "index.json")

    restored = SiteSearch(site="restored")
    result = restored.load_snapshot(path)

    assert result.documents_indexed == 3
    assert restored.is_ready
    assert restored.search("cpp") == site.search("cpp")


def test_concurrent_readers_see_complete_indexes(site, sample_records):
    site.rebuild(sample_records)
    replacement = [{"id": "other", "title": "Cpp Other", "url": "/other"}]
    seen = []

    def reader():
        for _ in range(50):
            seen.append(tuple(_ids(site.search("cpp"))))

    readers = [threading.Thread(target=reader) for _ in range(4)]
    for thread in readers:
        thread.start()
    for _ in range(5):
        site.rebuild(replacement)
        site.rebuild(sample_records)
    for thread in readers:
        thread.join()

    assert set(seen) <= {(2, 3), ("other",)}


class TestAsync:
    @pytest.mark.asyncio
    async def test_rebuild_async_awaits_feed_then_publishes(self, site, sample_records):
        async def fetch():
            await asyncio.sleep(0)
            return sample_records

        waiter = asyncio.create_task(site.wait_until_ready())
        result = await site.rebuild_async(fetch)
        await asyncio.wait_for(waiter, timeout=5)

        assert result.documents_indexed == 3
        assert _ids(site.search("column")) == [1]

    @pytest.mark.asyncio
    async def test_waiters_are_woken_by_a_rebuild_on_another_thread(self, site, sample_records):
        waiters = [asyncio.create_task(site.wait_until_ready()) for _ in range(3)]
        await asyncio.sleep(0)
        assert not any(waiter.done() for waiter in waiters)

        builder = threading.Thread(target=site.rebuild, args=(sample_records,))
        builder.start()
        await asyncio.wait_for(asyncio.gather(*waiters), timeout=5)
        builder.join()

        assert site.is_ready
        assert site._waiters == []

    @pytest.mark.asyncio
    async def test_wait_returns_at_once_when_ready(self, site, sample_records):
        site.rebuild(sample_records)

        await asyncio.wait_for(site.wait_until_ready(), timeout=1)

    @pytest.mark.asyncio
    async def test_cancelled_waiter_is_forgotten(self, site):
        waiter = asyncio.create_task(site.wait_until_ready())
        await asyncio.sleep(0)
        waiter.cancel()

        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert site._waiters == []

    @pytest.mark.asyncio
    async def test_failed_async_fetch_keeps_site_unready(self, site):
        async def fetch():
            raise OSError("feed unavailable")

        with pytest.raises(OSError, match="feed unavailable"):
            await site.rebuild_async(fetch)

        assert not site.is_ready
