"""Interactive chief complaint search.

Usage:
    python -m app.scripts.search_console [--limit 20] [--tags finding disorder] [--no-semantic]

Type a complaint to list matching concepts, then a result number to show the
concept's details.  An empty line or ``exit`` quits.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Callable, List

from app.core.config import settings
from app.core.search_config import SearchOptions, search_tuning
from app.db.async_session import dispose_async_engine, get_session_factory
from app.repositories.snomed_repository import SnomedRepository
from app.repositories.terminology import TerminologyStoreError
from app.schemas.snomed import ConceptSummary
from app.services.concept_search import ConceptSearchService
from app.services.hierarchy_service import ConceptHierarchyService
from app.services.suggestion_source import build_suggestion_source

RULE = "-" * 30


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


async def show_details(hierarchy: ConceptHierarchyService, concept_id: int) -> None:
    details = await hierarchy.get_concept_details(concept_id)
    if details is None:
        print("Concept not found.")
        return

    print("\n--- CONCEPT DETAILS ---")
    print(f"ID: {details.concept_id}")
    print(f"FSN: {details.fsn or '-'}")
    print(f"Preferred Term: {details.preferred_term}")
    print(f"Semantic Tag: {details.semantic_tag or '-'}")
    print(f"Synonyms: {', '.join(details.synonyms)}")
    if details.definition:
        print(f"Definition: {details.definition}")
    if details.parents:
        print("Parents:")
        for parent in details.parents:
            print(f"  - [{parent.concept_id}] {parent.preferred_term}")
    print(f"Children Count: {details.children_count}")
    print("-----------------------\n")


def print_results(results: List[ConceptSummary]) -> None:
    print(f"\nFound {len(results)} results:")
    print(RULE)
    for i, item in enumerate(results, start=1):
        print(f"{i}. {item.preferred_term}")
    print(RULE)


async def run_console(
    *,
    limit: int,
    options: SearchOptions,
    read_line: Callable[[str], str] = input,
) -> None:
    session_factory = get_session_factory()
    suggestion_source = build_suggestion_source()

    print("========================================")
    print(" SNOMED CT Chief Complaint Search")
    print("========================================")
    print("Type 'exit' to quit.")

    async with session_factory() as db:
        repository = SnomedRepository(db)
        search = ConceptSearchService(repository, repository, suggestion_source)
        hierarchy = ConceptHierarchyService(repository)

        while True:
            try:
                query = read_line("\nEnter search query: ")
            except EOFError:
                break
            if not query.strip() or query.strip().lower() == "exit":
                break

            print(f"Searching for '{query}'...")
            try:
                results = await search.search(query, limit=limit, options=options)
                if not results:
                    print("No results found.")
                    continue

                print_results(results)
                choice = read_line("\nEnter number for details (or Enter to search again): ").strip()
                if choice.isdigit() and 1 <= int(choice) <= len(results):
                    await show_details(hierarchy, results[int(choice) - 1].concept_id)
            except TerminologyStoreError as exc:
                print(f"Error: {exc}")
                await db.rollback()


def main() -> None:
    parser = argparse.ArgumentParser(description="Interactive SNOMED CT chief complaint search")
    parser.add_argument("--limit", type=int, default=search_tuning.default_limit)
    parser.add_argument("--tags", nargs="*", default=None, help="Semantic tags to search (default: finding)")
    parser.add_argument("--no-semantic", action="store_true", help="Disable the suggested-term fallback")
    args = parser.parse_args()

    _configure_logging()
    options = SearchOptions(
        semantic_tags=tuple(args.tags or ()),
        allow_semantic_fallback=not args.no_semantic,
    )

    async def _run() -> None:
        try:
            await run_console(limit=args.limit, options=options)
        finally:
            await dispose_async_engine()

    asyncio.run(_run())


if __name__ == "__main__":
    main()
