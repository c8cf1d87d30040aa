"""FastAPI application wiring the marketplace search service."""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .config import Settings, settings
from .db import get_database
from .documents import SearchCollections
from .importer import import_if_empty
from .indexing import collection_counts, ensure_indexes
from .models import (
    EntityType,
    HealthResponse,
    SearchPageResponse,
    SuggestResponse,
    Suggestions,
    UnifiedSearchResponse,
)
from .params import SearchParams, parse_params
from .search_service import EmptyQueryError, SearchService

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# uvicorn installs its own handlers; ``force=True`` replaces them so search
# timing lines share one format.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(name).setLevel(LOG_LEVEL)
logging.getLogger("pymongo").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


def _read_params(q, types, page, limit, mode, config: Settings) -> SearchParams:
    params = parse_params(q, types, page, limit, mode, default_limit=config.default_limit, max_limit=config.max_limit)
    if not params.term:
        raise HTTPException(status_code=400, detail="Query parameter q is required")
    return params


def _service(request: Request) -> SearchService:
    return request.app.state.search


def _configure(app: FastAPI, database: Database, config: Settings) -> SearchService:
    collections = SearchCollections.from_database(database, config)
    service = SearchService(
        collections,
        smart_prefix_min_length=config.smart_prefix_min_length,
        suggest_limit=config.suggest_limit,
    )
    app.state.database = database
    app.state.search = service
    return service


def create_app(database: Optional[Database] = None, config: Settings = settings) -> FastAPI:
    """Build the API; an injected ``database`` skips the startup connection."""

    app = FastAPI(title="Marketplace Search Service")
    if database is not None:
        _configure(app, database, config)

    @app.on_event("startup")
    async def startup_event() -> None:
        if database is not None:
            return
        service = _configure(app, get_database(), config)
        if config.ensure_indexes_on_startup:
            await ensure_indexes(service.collections)
        if config.load_on_startup:
            loaded = await import_if_empty(service.collections, Path(config.seed_path))
            if loaded:
                logger.info("Imported seed data on startup: %s", loaded)

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        db: Database = request.app.state.database
        try:
            await asyncio.to_thread(db.command, "ping")
            counts = await collection_counts(_service(request).collections)
        except PyMongoError:
            logger.exception("Health check failed")
            return HealthResponse(mongodb="unavailable", database=db.name)
        return HealthResponse(mongodb="ok", database=db.name, documents=counts)

    @app.get("/search", response_model=UnifiedSearchResponse)
    async def unified_search(
        request: Request,
        q: Optional[str] = Query(None, description="Search term"),
        types: Optional[str] = Query(None, description="Comma separated entity types"),
        page: Optional[str] = Query(None),
        limit: Optional[str] = Query(None),
        mode: Optional[str] = Query(None, description="smart | prefix | contains"),
    ) -> UnifiedSearchResponse:
        params = _read_params(q, types, page, limit, mode, config)
        try:
            result = await _service(request).search(
                params.term, params.entity_types, params.page, params.limit, params.mode
            )
        except EmptyQueryError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc
        except PyMongoError as exc:
            logger.exception("Unified search failed q=%r", params.term)
            raise HTTPException(status_code=500, detail="Unified search failed") from exc
        return UnifiedSearchResponse(
            q=result.query, page=result.page, limit=result.limit, results=result.results, counts=result.counts
        )

    @app.get("/search/suggest", response_model=SuggestResponse)
    async def suggest(request: Request, q: Optional[str] = Query(None, description="Prefix to complete")) -> SuggestResponse:
        term = (q or "").strip()
        if not term:
            raise HTTPException(status_code=400, detail="Query parameter q is required")
        try:
            result = await _service(request).suggest(term)
        except PyMongoError as exc:
            logger.exception("Suggestions failed q=%r", term)
            raise HTTPException(status_code=500, detail="Suggestions failed") from exc
        return SuggestResponse(
            q=result.query,
            sugerencias=Suggestions(**{entity.value: rows for entity, rows in result.suggestions.items()}),
        )

    def _entity_route(entity_type: EntityType) -> None:
        async def entity_search(
            request: Request,
            q: Optional[str] = Query(None, description="Search term"),
            page: Optional[str] = Query(None),
            limit: Optional[str] = Query(None),
            mode: Optional[str] = Query(None, description="smart | prefix | contains"),
        ) -> SearchPageResponse:
            params = _read_params(q, None, page, limit, mode, config)
            try:
                result = await _service(request).search_entity(
                    entity_type, params.term, params.page, params.limit, params.mode
                )
            except PyMongoError as exc:
                logger.exception("%s search failed q=%r", entity_type.value, params.term)
                raise HTTPException(status_code=500, detail=f"Searching {entity_type.value} failed") from exc
            return SearchPageResponse(
                q=params.term, page=params.page, limit=params.limit, results=result.items, total=result.total
            )

        app.add_api_route(
            f"/{entity_type.value}/search",
            entity_search,
            methods=["GET"],
            response_model=SearchPageResponse,
            name=f"search_{entity_type.value}",
        )

    for entity_type in EntityType.all():
        _entity_route(entity_type)

    return app


app = create_app()
