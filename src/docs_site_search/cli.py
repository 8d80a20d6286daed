"""Command line entry point: build, query and inspect site search indexes."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
import time
from typing import Any

import orjson

from docs_site_search.config import SearchConfig, Settings, load_search_config
from docs_site_search.errors import SearchError
from docs_site_search.observability.logging import configure_logging
from docs_site_search.search.documents import DocumentStore, load, read_lunr_store
from docs_site_search.search.engine import QueryEngine
from docs_site_search.search.formatter import build_response
from docs_site_search.search.index import InvertedIndex, build
from docs_site_search.search.storage import JsonIndexStore


logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_IO_ERROR = 1
EXIT_INVALID_INPUT = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docs-site-search",
        description="Build and query the full-text index of a static documentation site",
    )
    parser.add_argument(
        "--options",
        type=Path,
        help="JSON file with search options (fieldWeights, minTokenLength, stopWords, stemmer, matchMode, resultLimit)",
    )
    parser.add_argument(
        "--log-level",
        help="Override the log level (default: DOCS_SITE_SEARCH_LOG_LEVEL or info)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    index_parser = subparsers.add_parser("index", help="Build an index from a document store feed")
    index_parser.add_argument("feed", type=Path, help="Path to lunr-store.js or a JSON array of documents")
    index_parser.add_argument("--snapshot", type=Path, help="Write the built index to this snapshot file")

    search_parser = subparsers.add_parser("search", help="Run a query and print ranked results")
    search_parser.add_argument("query", help="Free-text query")
    source = search_parser.add_mutually_exclusive_group()
    source.add_argument("--feed", type=Path, help="Build the index from this feed before searching")
    source.add_argument("--snapshot", type=Path, help="Load a previously saved index snapshot")
    search_parser.add_argument("--limit", type=int, help="Maximum number of results")
    search_parser.add_argument("--match-mode", choices=("any", "all"), help="Override the configured match mode")
    search_parser.add_argument(
        "--raw",
        action="store_true",
        help="Print {documentId, score} pairs instead of display records",
    )

    inspect_parser = subparsers.add_parser("inspect", help="Summarize an index snapshot")
    inspect_parser.add_argument("--snapshot", type=Path, help="Snapshot file to inspect")
    return parser


def _read_options(path: Path | None) -> SearchConfig | None:
    if path is None:
        return None
    return load_search_config(orjson.loads(path.read_bytes()))


def _build_from_feed(feed: Path, config: SearchConfig | None) -> tuple[DocumentStore, InvertedIndex]:
    store = load(read_lunr_store(feed))
    return store, build(store, config)


def _emit(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode("utf-8") + "\n")


def _index_summary(index: InvertedIndex) -> dict[str, Any]:
    return {
        "documents": index.document_count,
        "terms": index.term_count,
        "fingerprint": index.fingerprint,
        "fields": {name: stats.average_length for name, stats in index.length_stats.items()},
    }


def _run_index(args: argparse.Namespace, settings: Settings, config: SearchConfig | None) -> int:
    store, index = _build_from_feed(args.feed, config)
    summary = _index_summary(index)
    snapshot = args.snapshot or settings.snapshot_path
    if snapshot is not None:
        summary["snapshot"] = str(JsonIndexStore(snapshot).save(store, index))
    _emit(summary)
    return EXIT_OK


def _run_search(args: argparse.Namespace, settings: Settings, config: SearchConfig | None) -> int:
    if args.snapshot is not None:
        store, index = JsonIndexStore(args.snapshot).load(config)
    elif args.feed is not None:
        store, index = _build_from_feed(args.feed, config)
    elif settings.snapshot_path is not None:
        store, index = JsonIndexStore(settings.snapshot_path).load(config)
    elif settings.feed_path is not None:
        store, index = _build_from_feed(settings.feed_path, config)
    else:
        logger.error("search needs --feed or --snapshot (or DOCS_SITE_SEARCH_FEED_PATH)")
        return EXIT_INVALID_INPUT

    engine_config = config or index.config
    if args.match_mode:
        engine_config = engine_config.model_copy(update={"match_mode": args.match_mode})
    limit = args.limit if args.limit is not None else engine_config.result_limit or settings.result_limit

    started = time.perf_counter()
    ranked = QueryEngine(index, engine_config).search(args.query, limit=limit)
    elapsed_ms = (time.perf_counter() - started) * 1000

    if args.raw:
        _emit([result.to_dict() for result in ranked])
    else:
        response = build_response(args.query, ranked, store, search_time_ms=elapsed_ms)
        _emit(response.model_dump())
    return EXIT_OK


def _run_inspect(args: argparse.Namespace, settings: Settings, config: SearchConfig | None) -> int:
    snapshot = args.snapshot or settings.snapshot_path
    if snapshot is None:
        logger.error("inspect needs --snapshot (or DOCS_SITE_SEARCH_SNAPSHOT_PATH)")
        return EXIT_INVALID_INPUT
    store, index = JsonIndexStore(snapshot).load(config)
    summary = _index_summary(index)
    summary["snapshot"] = str(snapshot)
    summary["options"] = index.config.model_dump(mode="json", by_alias=True, exclude={"stemmer"})
    summary["urls"] = [document.url for document in store]
    _emit(summary)
    return EXIT_OK


_COMMANDS = {
    "index": _run_index,
    "search": _run_search,
    "inspect": _run_inspect,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    settings = Settings()
    configure_logging(args.log_level or settings.log_level, json_output=settings.log_json)

    try:
        config = _read_options(args.options)
        return _COMMANDS[args.command](args, settings, config)
    except SearchError as exc:
        logger.error("%s", exc)
        return EXIT_INVALID_INPUT
    except orjson.JSONDecodeError as exc:
        logger.error("Invalid options file: %s", exc)
        return EXIT_INVALID_INPUT
    except OSError as exc:
        logger.error("I/O error: %s", exc)
        return EXIT_IO_ERROR


if __name__ == "__main__":
    sys.exit(main())
