"""Terminal client that reuses the in-process search logic."""
from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import Iterable

from market_search.config import settings
from market_search.db import get_database
from market_search.documents import SearchCollections
from market_search.params import SearchParams, parse_params
from market_search.search_service import SearchService

GREEN = "\033[92m"
RESET = "\033[0m"

LABEL_FIELDS = ("nombre", "nombreComercial", "apellido", "empNombreComercial", "ownerNombreCompleto", "email")


def build_service() -> SearchService:
    collections = SearchCollections.from_database(get_database(), settings)
    return SearchService(
        collections,
        smart_prefix_min_length=settings.smart_prefix_min_length,
        suggest_limit=settings.suggest_limit,
    )


def _label(row: dict) -> str:
    return " | ".join(str(row[field]) for field in LABEL_FIELDS if row.get(field))


async def perform_query(service: SearchService, params: SearchParams) -> None:
    result = await service.search(params.term, params.entity_types, params.page, params.limit, params.mode)
    print(f"Query: {result.query} | page {result.page} | limit {result.limit}")
    for entity, rows in result.results.items():
        print(f"{GREEN}{entity.value}{RESET}: {result.counts[entity]} total")
        for idx, row in enumerate(rows, start=params.skip + 1):
            print(f"  {idx:02d}. {_label(row)}")


async def perform_suggest(service: SearchService, term: str) -> None:
    result = await service.suggest(term)
    print(f"Suggestions for: {result.query}")
    for entity, rows in result.suggestions.items():
        print(f"{GREEN}{entity.value}{RESET}: " + ", ".join(_label(row) for row in rows))


def run_one(service: SearchService, query: str, args: argparse.Namespace) -> None:
    if args.suggest:
        asyncio.run(perform_suggest(service, query))
        return
    params = parse_params(query, args.types, args.page, args.limit, args.mode)
    if not params.term:
        return
    asyncio.run(perform_query(service, params))


def interactive_shell(service: SearchService, args: argparse.Namespace) -> None:
    print("Interactive marketplace search. Type 'exit' to quit.")
    while True:
        try:
            query = input("> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not query:
            continue
        if query.lower() in {"exit", "quit"}:
            return
        run_one(service, query, args)


def batch_mode(service: SearchService, file_path: Path, args: argparse.Namespace) -> None:
    with file_path.open("r", encoding="utf-8") as fh:
        for line in fh:
            query = line.strip()
            if not query:
                continue
            run_one(service, query, args)


def main(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="CLI client for the marketplace search service")
    parser.add_argument("query", nargs="?", help="Search term. If omitted, starts REPL mode.")
    parser.add_argument("--types", help="Comma separated entity types (productos,emprendimientos,emprendedores)")
    parser.add_argument("--mode", default="smart", help="smart | prefix | contains")
    parser.add_argument("--page", default="1")
    parser.add_argument("--limit", default=str(settings.default_limit))
    parser.add_argument("--suggest", action="store_true", help="Show autocomplete suggestions instead")
    parser.add_argument("--batch", type=Path, help="File with queries to execute line by line")
    args = parser.parse_args(list(argv) if argv is not None else None)

    service = build_service()
    if args.batch:
        batch_mode(service, args.batch, args)
        return 0
    if args.query:
        run_one(service, args.query, args)
        return 0
    interactive_shell(service, args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
