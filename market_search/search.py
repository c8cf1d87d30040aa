"""Per-entity catalog search against the marketplace collections.

Vendors are matched with a plain filtered ``find``. Ventures and products are
matched through aggregation pipelines that join their owners first, so a
venture can be found by its owner's full name and a product by its venture's
commercial name or its vendor's full name. The count for each entity reuses
the same filter (or the same pipeline without ``$skip``/``$limit``) under the
same collation, so ``total`` always agrees with the rows.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List

from bson import ObjectId
from pymongo.collection import Collection

from .documents import Emprendedor, Emprendimiento, Producto, SearchCollections, owner_full_name
from .models import Document, SearchPage
from .patterns import SearchPattern

logger = logging.getLogger(__name__)

Pipeline = List[Dict[str, Any]]

VENDOR_PROJECTION = {
    "nombre": 1,
    "apellido": 1,
    "email": 1,
    "telefono": 1,
    "descripcion": 1,
    "estado_Emprendedor": 1,
    "rol": 1,
}
VENTURE_PROJECTION = {
    "nombreComercial": 1,
    "descripcion": 1,
    "ubicacion": 1,
    "slug": 1,
    "logo": 1,
    "contacto.telefono": 1,
    "contacto.email": 1,
    "contacto.sitioWeb": 1,
    "ownerNombreCompleto": 1,
}
PRODUCT_PROJECTION = {
    "nombre": 1,
    "descripcion": 1,
    "precio": 1,
    "stock": 1,
    "imagen": 1,
    "empNombreComercial": 1,
    "ownerNombreCompleto": 1,
}


def any_field_matches(pattern: SearchPattern, fields: tuple[str, ...] | list[str]) -> Dict[str, Any]:
    return {"$or": [{field: {"$regex": pattern.regex}} for field in fields]}


def vendor_filter(pattern: SearchPattern) -> Dict[str, Any]:
    return any_field_matches(pattern, Emprendedor.search_fields)


def venture_owner_stages(vendor_collection: str) -> Pipeline:
    """Join each venture to its vendor and derive ``ownerNombreCompleto``."""
    return [
        {
            "$lookup": {
                "from": vendor_collection,
                "localField": Emprendimiento.owner_field,
                "foreignField": "_id",
                "as": "owner",
            }
        },
        {"$unwind": "$owner"},
        {"$addFields": {"ownerNombreCompleto": owner_full_name("owner")}},
    ]


def venture_pipeline(collections: SearchCollections, pattern: SearchPattern, skip: int, limit: int) -> Pipeline:
    return venture_owner_stages(collections.vendor_collection_name) + [
        {"$match": any_field_matches(pattern, Emprendimiento.search_fields + ("ownerNombreCompleto",))},
        {"$project": dict(VENTURE_PROJECTION)},
        {"$skip": skip},
        {"$limit": limit},
    ]


def product_venture_stage(venture_collection: str) -> Dict[str, Any]:
    return {
        "$lookup": {
            "from": venture_collection,
            "localField": Producto.venture_field,
            "foreignField": "_id",
            "as": "emp",
        }
    }


def product_pipeline(collections: SearchCollections, pattern: SearchPattern, skip: int, limit: int) -> Pipeline:
    return [
        product_venture_stage(collections.venture_collection_name),
        {"$unwind": "$emp"},
        {
            "$lookup": {
                "from": collections.vendor_collection_name,
                "localField": f"emp.{Emprendimiento.owner_field}",
                "foreignField": "_id",
                "as": "owner",
            }
        },
        # Products keep matching by their own name even when the vendor is gone.
        {"$unwind": {"path": "$owner", "preserveNullAndEmptyArrays": True}},
        {
            "$addFields": {
                "empNombreComercial": "$emp.nombreComercial",
                "ownerNombreCompleto": owner_full_name("owner"),
            }
        },
        {"$match": any_field_matches(pattern, Producto.search_fields + ("empNombreComercial", "ownerNombreCompleto"))},
        {"$project": dict(PRODUCT_PROJECTION)},
        {"$skip": skip},
        {"$limit": limit},
    ]


def count_pipeline(pipeline: Pipeline) -> Pipeline:
    """Same pipeline without paging, reduced to a single ``total`` document."""
    stages = [stage for stage in pipeline if "$skip" not in stage and "$limit" not in stage]
    return stages + [{"$count": "total"}]


def serialize_document(value: Any) -> Any:
    """Render ``ObjectId`` values as strings so rows are JSON friendly."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {key: serialize_document(item) for key, item in value.items()}
    if isinstance(value, list):
        return [serialize_document(item) for item in value]
    return value


async def run_aggregate(collection: Collection, pipeline: Pipeline, collections: SearchCollections) -> List[Document]:
    logger.debug("aggregate collection=%s pipeline=%s", collection.name, pipeline)
    rows = await asyncio.to_thread(
        lambda: list(collection.aggregate(pipeline, collation=collections.collation))
    )
    return [serialize_document(row) for row in rows]


async def run_find(
    collection: Collection,
    filter_: Dict[str, Any],
    projection: Dict[str, Any],
    collections: SearchCollections,
    *,
    skip: int = 0,
    limit: int = 0,
) -> List[Document]:
    logger.debug("find collection=%s filter=%s skip=%s limit=%s", collection.name, filter_, skip, limit)
    rows = await asyncio.to_thread(
        lambda: list(
            collection.find(
                filter_,
                projection=projection,
                skip=skip,
                limit=limit,
                collation=collections.collation,
            )
        )
    )
    return [serialize_document(row) for row in rows]


async def _aggregate_page(collection: Collection, pipeline: Pipeline, collections: SearchCollections) -> SearchPage:
    items, counted = await asyncio.gather(
        run_aggregate(collection, pipeline, collections),
        run_aggregate(collection, count_pipeline(pipeline), collections),
    )
    total = counted[0]["total"] if counted else 0
    return SearchPage(items=items, total=total)


async def search_vendors(collections: SearchCollections, pattern: SearchPattern, skip: int, limit: int) -> SearchPage:
    filter_ = vendor_filter(pattern)
    items, total = await asyncio.gather(
        run_find(collections.vendors, filter_, VENDOR_PROJECTION, collections, skip=skip, limit=limit),
        asyncio.to_thread(collections.vendors.count_documents, filter_, collation=collections.collation),
    )
    return SearchPage(items=items, total=total)


async def search_ventures(collections: SearchCollections, pattern: SearchPattern, skip: int, limit: int) -> SearchPage:
    return await _aggregate_page(collections.ventures, venture_pipeline(collections, pattern, skip, limit), collections)


async def search_products(collections: SearchCollections, pattern: SearchPattern, skip: int, limit: int) -> SearchPage:
    return await _aggregate_page(collections.products, product_pipeline(collections, pattern, skip, limit), collections)
