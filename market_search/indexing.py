"""Index maintenance for the collections search joins across."""
from __future__ import annotations

import asyncio
import logging

from pymongo import ASCENDING
from pymongo.errors import OperationFailure

from .documents import Emprendimiento, Producto, SearchCollections

logger = logging.getLogger(__name__)

NAME_FIELDS = {
    "vendors": ("nombre", "apellido", "email"),
    "ventures": ("nombreComercial",),
    "products": ("nombre",),
}


async def ensure_indexes(collections: SearchCollections) -> list[str]:
    """Create the join-key and name-field indexes if they are missing.

    Foreign keys hold ObjectIds and are indexed without a collation; name
    fields use the search collation. An index that already exists with
    different options is logged and left alone.
    """

    specs = [
        (collections.ventures, Emprendimiento.owner_field, None),
        (collections.products, Producto.venture_field, None),
    ]
    for attribute, fields in NAME_FIELDS.items():
        collection = getattr(collections, attribute)
        specs.extend((collection, field, collections.collation) for field in fields)

    created: list[str] = []
    for collection, field, collation in specs:
        options = {"collation": collation} if collation is not None else {}
        try:
            name = await asyncio.to_thread(collection.create_index, [(field, ASCENDING)], **options)
        except OperationFailure as exc:
            logger.warning("Could not create index on %s.%s: %s", collection.name, field, exc)
            continue
        logger.info("Index %s ready on %s", name, collection.name)
        created.append(f"{collection.name}.{name}")
    return created


async def collection_counts(collections: SearchCollections) -> dict[str, int]:
    vendors, ventures, products = await asyncio.gather(
        asyncio.to_thread(collections.vendors.estimated_document_count),
        asyncio.to_thread(collections.ventures.estimated_document_count),
        asyncio.to_thread(collections.products.estimated_document_count),
    )
    return {
        collections.vendors.name: vendors,
        collections.ventures.name: ventures,
        collections.products.name: products,
    }
