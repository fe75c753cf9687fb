"""Command-line corpus management for tenderDraft.

Usage::

    python -m tenderdraft.cli create-corpus --name "Past bids" \\
        --description "Answers submitted in 2023-2024"

    python -m tenderdraft.cli ingest --corpus-id <id> --file bid.pdf --file cvs.docx

    python -m tenderdraft.cli ingest --corpus-id <id> --directory ./references

    python -m tenderdraft.cli search --query "ISO 27001 certification" --limit 5

    python -m tenderdraft.cli list

The CLI builds the same providers and services as the web application
(``tenderdraft.main.build_services``) so documents ingested here are
searchable through the API and vice versa.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Any

from tenderdraft.config.settings import Settings
from tenderdraft.models.corpus import DocumentStatus
from tenderdraft.models.rag import CorpusScope
from tenderdraft.utils.errors import TenderDraftError


def _build_components(app_settings: Settings) -> dict[str, Any]:
    # Deferred so that --help does not import FastAPI and the providers.
    from tenderdraft.main import build_services

    return build_services(app_settings)


def _collect_files(args: argparse.Namespace, allowed: frozenset[str]) -> list[Path]:
    files = [Path(f) for f in args.file or []]
    if args.directory:
        directory = Path(args.directory)
        files.extend(
            sorted(
                p for p in directory.iterdir()
                if p.is_file() and p.suffix.lstrip(".").lower() in allowed
            )
        )
    return files


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_create_corpus(args: argparse.Namespace, components: dict[str, Any]) -> int:
    corpus = await components["corpus_service"].create_corpus(
        name=args.name,
        org_id=args.org,
        description=args.description,
    )
    print(f"Created corpus {corpus.name!r}")
    print(f"  ID:           {corpus.id}")
    print(f"  Organization: {corpus.org_id}")
    return 0


async def _handle_ingest(args: argparse.Namespace, components: dict[str, Any]) -> int:
    files = _collect_files(args, components["allowed_extensions"])
    if not files:
        print("Error: no files to ingest (use --file or --directory).", file=sys.stderr)
        return 1

    await components["corpus_service"].get_corpus(args.corpus_id)

    service = components["ingestion_service"]
    failures = 0
    total_chunks = 0
    for path in files:
        print(f"Ingesting: {path}")
        result = await service.ingest(
            corpus_id=args.corpus_id,
            file_bytes=path.read_bytes(),
            file_name=path.name,
        )
        total_chunks += result.chunk_count
        print(f"  Status:  {result.status.value}")
        print(f"  Chunks:  {result.chunk_count}/{result.chunks_produced}")
        print(f"  Time:    {result.ingestion_time:.2f}s")
        if result.warning:
            print(f"  Warning: {result.warning}")
        if result.status is DocumentStatus.ERROR:
            failures += 1

    print()
    print(f"Files processed: {len(files)} ({failures} failed)")
    print(f"Total chunks:    {total_chunks}")
    return 1 if failures else 0


async def _handle_search(args: argparse.Namespace, components: dict[str, Any]) -> int:
    result = await components["retrieval_service"].search(
        args.query,
        CorpusScope(corpus_ids=args.corpus_id or [], project_id=args.project, org_id=args.org),
        limit=args.limit,
    )
    if not result.chunks:
        print(result.message or "No results.")
        return 0

    print(f"{len(result.chunks)} result(s) via {result.method.value}")
    for rank, chunk in enumerate(result.chunks, start=1):
        score = f" ({chunk.similarity:.3f})" if chunk.similarity is not None else ""
        preview = " ".join(chunk.content.split())[:200]
        print(f"\n[{rank}] {chunk.document_name} #{chunk.position}{score}")
        print(f"    {preview}")
    return 0


async def _handle_list(args: argparse.Namespace, components: dict[str, Any]) -> int:
    entries = await components["corpus_service"].list_corpora(args.org)
    if not entries:
        print(f"No corpora for organization {args.org}.")
        return 0

    for entry in entries:
        corpus = entry.corpus
        print(f"{corpus.name}  [{corpus.id}]")
        if corpus.description:
            print(f"  {corpus.description}")
        for doc in entry.documents:
            line = f"  - {doc.name} ({doc.file_type}, {doc.status.value}, {doc.chunk_count} chunks)"
            print(line + (f"  ! {doc.warning}" if doc.warning else ""))
    return 0


_HANDLERS = {
    "create-corpus": _handle_create_corpus,
    "ingest": _handle_ingest,
    "search": _handle_search,
    "list": _handle_list,
}


async def _run(args: argparse.Namespace, app_settings: Settings) -> int:
    components = _build_components(app_settings)
    await components["corpus_store"].initialize()
    return await _HANDLERS[args.command](args, components)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser(default_org: str) -> argparse.ArgumentParser:
    """Build the argparse parser for the corpus CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m tenderdraft.cli",
        description="Manage tenderDraft reference corpora.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Corpus commands")

    # -- create-corpus --
    create_parser = subparsers.add_parser("create-corpus", help="Create an empty corpus")
    create_parser.add_argument("--name", required=True, help="Corpus name")
    create_parser.add_argument("--description", default=None, help="Optional description")
    create_parser.add_argument("--org", default=default_org, help="Owning organization id")

    # -- ingest --
    ingest_parser = subparsers.add_parser("ingest", help="Ingest files into a corpus")
    ingest_parser.add_argument("--corpus-id", required=True, dest="corpus_id")
    ingest_parser.add_argument(
        "--file", action="append", help="File to ingest (repeatable)"
    )
    ingest_parser.add_argument(
        "--directory", default=None, help="Ingest every supported file in this directory"
    )

    # -- search --
    search_parser = subparsers.add_parser("search", help="Search the corpus")
    search_parser.add_argument("--query", required=True, help="Search text")
    search_parser.add_argument(
        "--corpus-id", action="append", dest="corpus_id", help="Restrict to corpus (repeatable)"
    )
    search_parser.add_argument("--project", default=None, help="Use the project's linked corpora")
    search_parser.add_argument("--org", default=default_org, help="Organization id")
    search_parser.add_argument("--limit", type=int, default=None, help="Maximum results")

    # -- list --
    list_parser = subparsers.add_parser("list", help="List corpora and their documents")
    list_parser.add_argument("--org", default=default_org, help="Organization id")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to a command handler; returns the exit code."""
    app_settings = Settings()
    parser = _build_parser(app_settings.default_organization_id)
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    try:
        return asyncio.run(_run(args, app_settings))
    except TenderDraftError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
