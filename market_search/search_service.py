"""Unified marketplace search and autocomplete built on the entity searches."""
from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Awaitable, Callable, Dict, Iterable, List

from .documents import SearchCollections
from .models import Document, EntityType, PatternMode, SearchPage, SuggestionResult, UnifiedResult
from .params import clamp_page
from .patterns import SMART_PREFIX_MIN_LENGTH, SearchPattern, build_pattern
from .search import (
    any_field_matches,
    product_venture_stage,
    run_aggregate,
    run_find,
    search_products,
    search_vendors,
    search_ventures,
    vendor_filter,
    venture_owner_stages,
)

logger = logging.getLogger(__name__)

SUGGEST_LIMIT = 5

Executor = Callable[[SearchCollections, SearchPattern, int, int], Awaitable[SearchPage]]

EXECUTORS: Dict[EntityType, Executor] = {
    EntityType.PRODUCTOS: search_products,
    EntityType.EMPRENDIMIENTOS: search_ventures,
    EntityType.EMPRENDEDORES: search_vendors,
}


class SearchError(Exception):
    """Base error for the search subsystem."""


class EmptyQueryError(SearchError, ValueError):
    """Raised before any query is issued when the search term is blank."""


def _require_term(term: str) -> str:
    cleaned = (term or "").strip()
    if not cleaned:
        raise EmptyQueryError("Query parameter q is required")
    return cleaned


class SearchService:
    """Runs searches against explicitly provided collection handles."""

    def __init__(
        self,
        collections: SearchCollections,
        *,
        smart_prefix_min_length: int = SMART_PREFIX_MIN_LENGTH,
        suggest_limit: int = SUGGEST_LIMIT,
    ) -> None:
        self.collections = collections
        self.smart_prefix_min_length = smart_prefix_min_length
        self.suggest_limit = suggest_limit

    def pattern_for(self, term: str, mode: str | PatternMode | None) -> SearchPattern:
        return build_pattern(term, mode, smart_prefix_min_length=self.smart_prefix_min_length)

    async def search_entity(
        self,
        entity_type: EntityType,
        term: str,
        page: int,
        limit: int,
        mode: str | PatternMode | None = PatternMode.SMART,
    ) -> SearchPage:
        term = _require_term(term)
        page = clamp_page(page, limit)
        pattern = self.pattern_for(term, mode)
        t0 = perf_counter()
        result = await EXECUTORS[entity_type](self.collections, pattern, (page - 1) * limit, limit)
        logger.info(
            "search entity=%s q=%r mode=%s anchored=%s page=%s limit=%s total=%s took=%.2fms",
            entity_type.value,
            term,
            pattern.mode.value,
            pattern.anchored,
            page,
            limit,
            result.total,
            (perf_counter() - t0) * 1000,
        )
        return result

    async def search(
        self,
        term: str,
        entity_types: Iterable[EntityType],
        page: int,
        limit: int,
        mode: str | PatternMode | None = PatternMode.SMART,
    ) -> UnifiedResult:
        """Search every requested entity type concurrently with one shared pattern.

        Any failing entity search fails the whole call; results for the other
        types are discarded rather than returned without the failed section.
        """

        term = _require_term(term)
        pattern = self.pattern_for(term, mode)
        page = clamp_page(page, limit)
        skip = (page - 1) * limit
        requested: List[EntityType] = list(dict.fromkeys(entity_types))

        t0 = perf_counter()
        pages = await asyncio.gather(
            *(EXECUTORS[entity](self.collections, pattern, skip, limit) for entity in requested)
        )
        result = UnifiedResult(query=term, page=page, limit=limit)
        for entity, entity_page in zip(requested, pages):
            result.results[entity] = entity_page.items
            result.counts[entity] = entity_page.total

        logger.info(
            "unified search q=%r mode=%s anchored=%s types=%s page=%s limit=%s counts=%s took=%.2fms",
            term,
            pattern.mode.value,
            pattern.anchored,
            ",".join(entity.value for entity in requested),
            page,
            limit,
            {entity.value: total for entity, total in result.counts.items()},
            (perf_counter() - t0) * 1000,
        )
        return result

    async def suggest(self, term: str) -> SuggestionResult:
        """Top prefix matches per entity type for autocomplete dropdowns."""

        term = _require_term(term)
        pattern = self.pattern_for(term, PatternMode.PREFIX)
        collections = self.collections
        limit = self.suggest_limit

        product_rows = [
            product_venture_stage(collections.venture_collection_name),
            {"$unwind": "$emp"},
            {"$match": any_field_matches(pattern, ("nombre", "emp.nombreComercial"))},
            {"$project": {"nombre": 1, "empNombreComercial": "$emp.nombreComercial"}},
            {"$limit": limit},
        ]
        venture_rows = venture_owner_stages(collections.vendor_collection_name) + [
            {"$match": any_field_matches(pattern, ("nombreComercial", "ownerNombreCompleto"))},
            {"$project": {"nombreComercial": 1, "ownerNombreCompleto": 1, "slug": 1}},
            {"$limit": limit},
        ]

        t0 = perf_counter()
        products, ventures, vendors = await asyncio.gather(
            run_aggregate(collections.products, product_rows, collections),
            run_aggregate(collections.ventures, venture_rows, collections),
            run_find(
                collections.vendors,
                vendor_filter(pattern),
                {"nombre": 1, "apellido": 1, "email": 1},
                collections,
                limit=limit,
            ),
        )
        suggestions: Dict[EntityType, List[Document]] = {
            EntityType.PRODUCTOS: products,
            EntityType.EMPRENDIMIENTOS: ventures,
            EntityType.EMPRENDEDORES: vendors,
        }
        logger.info(
            "suggest q=%r sizes=%s took=%.2fms",
            term,
            {entity.value: len(rows) for entity, rows in suggestions.items()},
            (perf_counter() - t0) * 1000,
        )
        return SuggestionResult(query=term, suggestions=suggestions)
