"""Demo data loader for local development databases.

The seed file groups documents by entity type. Ventures point at their vendor
through ``emprendedor`` (the vendor's email) and products at their venture
through ``emprendimiento`` (the venture's slug); both are resolved to
ObjectIds before insertion.
"""
from __future__ import annotations

import asyncio
import json
import logging
import re
from pathlib import Path

from bson import ObjectId
from unidecode import unidecode

from .documents import Emprendimiento, Producto, SearchCollections
from .indexing import collection_counts

logger = logging.getLogger(__name__)

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    return _SLUG_STRIP_RE.sub("-", unidecode(text or "").lower()).strip("-")


def _load_seed(path: Path) -> dict:
    if not path.exists():
        logger.warning("Seed file %s is missing", path)
        return {}
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def _prepare_vendor(raw: dict) -> dict:
    vendor = {
        "_id": ObjectId(),
        "nombre": (raw.get("nombre") or "").strip(),
        "apellido": (raw.get("apellido") or "").strip(),
        "email": (raw.get("email") or "").strip().lower(),
        "telefono": raw.get("telefono"),
        "descripcion": raw.get("descripcion", ""),
        "rol": raw.get("rol", "Emprendedor"),
        "estado_Emprendedor": raw.get("estado_Emprendedor", "Activo"),
    }
    return vendor


def _prepare_venture(raw: dict, vendor_ids: dict[str, ObjectId]) -> dict | None:
    owner_email = (raw.get(Emprendimiento.owner_field) or "").strip().lower()
    owner_id = vendor_ids.get(owner_email)
    if owner_id is None:
        logger.warning("Skipping venture %r: unknown vendor %r", raw.get("nombreComercial"), owner_email)
        return None
    name = (raw.get("nombreComercial") or "").strip()
    return {
        "_id": ObjectId(),
        "nombreComercial": name,
        "slug": raw.get("slug") or slugify(name),
        "descripcion": raw.get("descripcion", ""),
        "logo": raw.get("logo"),
        "ubicacion": raw.get("ubicacion", {}),
        "contacto": raw.get("contacto", {}),
        "estado": raw.get("estado", "Activo"),
        Emprendimiento.owner_field: owner_id,
    }


def _prepare_product(raw: dict, venture_ids: dict[str, ObjectId]) -> dict | None:
    venture_slug = raw.get(Producto.venture_field) or ""
    venture_id = venture_ids.get(venture_slug)
    if venture_id is None:
        logger.warning("Skipping product %r: unknown venture %r", raw.get("nombre"), venture_slug)
        return None
    return {
        "_id": ObjectId(),
        "nombre": (raw.get("nombre") or "").strip(),
        "descripcion": raw.get("descripcion", ""),
        "precio": raw.get("precio", 0),
        "stock": raw.get("stock", 0),
        "imagen": raw.get("imagen"),
        "estado": raw.get("estado", True),
        Producto.venture_field: venture_id,
    }


async def load_seed(collections: SearchCollections, path: Path) -> dict[str, int]:
    data = _load_seed(path)
    vendors = [_prepare_vendor(item) for item in data.get("emprendedores", [])]
    vendor_ids = {vendor["email"]: vendor["_id"] for vendor in vendors}
    ventures = [
        venture
        for venture in (_prepare_venture(item, vendor_ids) for item in data.get("emprendimientos", []))
        if venture is not None
    ]
    venture_ids = {venture["slug"]: venture["_id"] for venture in ventures}
    products = [
        product
        for product in (_prepare_product(item, venture_ids) for item in data.get("productos", []))
        if product is not None
    ]

    inserted: dict[str, int] = {}
    for collection, documents in (
        (collections.vendors, vendors),
        (collections.ventures, ventures),
        (collections.products, products),
    ):
        if documents:
            await asyncio.to_thread(collection.insert_many, documents)
        inserted[collection.name] = len(documents)
    logger.info("Loaded seed %s: %s", path, inserted)
    return inserted


async def import_if_empty(collections: SearchCollections, path: Path) -> dict[str, int]:
    counts = await collection_counts(collections)
    if any(counts.values()):
        return {}
    return await load_seed(collections, path)
