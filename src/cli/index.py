# =============================================================================
# src/cli/index.py -- CLI Index Command (Corpus Management)
# =============================================================================
#
# Standalone CLI for managing the documentation vector store.  Every
# subcommand builds the same services the long-running front-ends use
# (src/main.build_services), so the CLI and a deployed server always agree
# on embedding model, chunking and collection.
#
# Supported subcommands:
#
#   index     -- Index a directory or .zip archive of Markdown as a version
#   search    -- Run a query against a version and print the context block
#   versions  -- List indexed versions (latest last)
#   stats     -- Display corpus statistics
#   delete    -- Remove every chunk of one version
#   clear     -- Drop the whole collection
#
# Usage examples:
#   python -m src.cli.index index --path ./docs --version 6.3.3
#   python -m src.cli.index index --path ./upload.zip --version 7.0.0
#   python -m src.cli.index search "row height" --tags react --limit 3
#   python -m src.cli.index stats
#   python -m src.cli.index delete --version 6.3.3 --yes
# =============================================================================

"""Standalone CLI for building and querying the documentation corpus.

Usage::

    python -m src.cli.index index --path ./docs --version 6.3.3

    python -m src.cli.index search "configure columns" --version 6.3.3

    python -m src.cli.index stats
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from src.config.settings import Settings
from src.models.job import Job, JobStatus
from src.utils.errors import DocIndexError


def _services(app_settings: Settings) -> dict[str, Any]:
    # Deferred: building services loads the embedding model.
    from src.main import build_services

    return build_services(settings=app_settings)


async def _handle_index(args: argparse.Namespace, app_settings: Settings) -> int:
    """Index a directory or archive and print progress as it runs."""
    from src.main import build_document_source

    services = _services(app_settings)
    source = build_document_source(args.path, args.extensions or app_settings.source_extensions)
    runner = services["index_job_runner"]
    jobs = services["job_manager"]

    print(f"Indexing {args.path} as version {args.version}")

    def show(job: Job) -> None:
        print(f"  [{job.progress:3d}%] {job.stage}: {job.message}")

    job_id = runner.submit(source, args.version, metadata={"origin": "cli"})
    unsubscribe = jobs.on(f"progress:{job_id}", show)
    await runner.wait(job_id)
    unsubscribe()

    job = jobs.get_job(job_id)
    if job is None or job.status is not JobStatus.COMPLETED:
        message = job.error.message if job and job.error else "unknown failure"
        print(f"\nIndexing failed: {message}", file=sys.stderr)
        return 1

    result = job.result or {}
    print("\nIndexing complete:")
    print(f"  Documents processed: {result.get('documentsProcessed', 0)}")
    print(f"  Chunks indexed:      {result.get('chunksIndexed', 0)}")
    print(f"  Time:                {result.get('durationMs', 0) / 1000:.2f}s")
    return 0


async def _handle_search(args: argparse.Namespace, app_settings: Settings) -> int:
    query_service = _services(app_settings)["query_service"]
    await query_service.initialize()
    results = await query_service.search(
        args.query,
        limit=args.limit,
        version=args.version,
        tags=args.tags,
    )
    print(query_service.format_context(results))
    await query_service.close()
    return 0


async def _handle_versions(app_settings: Settings) -> int:
    store = _services(app_settings)["vector_store"]
    await store.initialize()
    versions = await store.get_all_versions()
    if not versions:
        print("No versions indexed.")
        return 0
    for version in versions:
        print(version)
    return 0


async def _handle_stats(app_settings: Settings) -> int:
    store = _services(app_settings)["vector_store"]
    await store.initialize()
    stats = await store.get_stats()

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Total chunks:     {stats.total_chunks}")
    print(f"  Total documents:  {stats.total_documents}")
    print(f"  Versions:         {', '.join(stats.versions) or '-'}")
    print(f"  Latest version:   {stats.latest_version or '-'}")
    print(f"  Distinct tags:    {stats.tag_count}")
    print(f"  Products:         {', '.join(stats.products) or '-'}")
    print(f"  Frameworks:       {', '.join(stats.frameworks) or '-'}")
    return 0


async def _handle_delete(args: argparse.Namespace, app_settings: Settings) -> int:
    store = _services(app_settings)["vector_store"]
    await store.initialize()
    if not args.yes:
        answer = input(f"Delete every chunk of version {args.version}? [y/N] ")
        if answer.strip().lower() != "y":
            print("  Aborted.")
            return 1
    deleted = await store.delete_by_version(args.version)
    print(f"Deleted {deleted} chunks.")
    return 0


async def _handle_clear(args: argparse.Namespace, app_settings: Settings) -> int:
    store = _services(app_settings)["vector_store"]
    if not args.yes:
        answer = input("Drop the entire collection? [y/N] ")
        if answer.strip().lower() != "y":
            print("  Aborted.")
            return 1
    await store.clear_all()
    print("Collection cleared.")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the index CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m src.cli.index",
        description="Index and query versioned Markdown documentation.",
    )
    sub = parser.add_subparsers(dest="command")

    index = sub.add_parser("index", help="Index a directory or .zip archive")
    index.add_argument("--path", required=True, help="Directory or .zip archive")
    index.add_argument("--version", required=True, help="Version label, e.g. 6.3.3")
    index.add_argument(
        "--extensions",
        nargs="+",
        help="File extensions to include (default: SOURCE_EXTENSIONS)",
    )

    search = sub.add_parser("search", help="Search a version")
    search.add_argument("query", help="Natural-language query")
    search.add_argument("--version", help="Version to search (default: latest)")
    search.add_argument("--tags", nargs="+", help="Keep results with any of these tags")
    search.add_argument("--limit", type=int, help="Maximum results")

    sub.add_parser("versions", help="List indexed versions")
    sub.add_parser("stats", help="Show corpus statistics")

    delete = sub.add_parser("delete", help="Delete one version")
    delete.add_argument("--version", required=True)
    delete.add_argument("--yes", action="store_true", help="Skip confirmation")

    clear = sub.add_parser("clear", help="Drop the whole collection")
    clear.add_argument("--yes", action="store_true", help="Skip confirmation")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    app_settings = Settings()

    handlers = {
        "index": lambda: _handle_index(args, app_settings),
        "search": lambda: _handle_search(args, app_settings),
        "versions": lambda: _handle_versions(app_settings),
        "stats": lambda: _handle_stats(app_settings),
        "delete": lambda: _handle_delete(args, app_settings),
        "clear": lambda: _handle_clear(args, app_settings),
    }
    handler = handlers.get(args.command)
    if handler is None:
        parser.print_help()
        sys.exit(1)

    try:
        exit_code = asyncio.run(handler())
    except DocIndexError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        exit_code = 1
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
