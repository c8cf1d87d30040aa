"""Stored marketplace documents read by the search subsystem.

Vendors (``Emprendedor``), ventures (``Emprendimiento``) and products
(``Producto``) are written by the account and catalog services; search only
reads them. Each descriptor owns its collection name and the foreign key it
carries, so pipelines never spell those strings out themselves.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar

from pymongo.collation import Collation
from pymongo.collection import Collection
from pymongo.database import Database

from .config import Settings, settings as default_settings


class Emprendedor:
    collection_name: ClassVar[str] = "emprendedors"
    search_fields: ClassVar[tuple[str, ...]] = ("nombre", "apellido", "email")


class Emprendimiento:
    collection_name: ClassVar[str] = "emprendimientos"
    owner_field: ClassVar[str] = "emprendedor"
    search_fields: ClassVar[tuple[str, ...]] = ("nombreComercial", "descripcion", "ubicacion.ciudad")


class Producto:
    collection_name: ClassVar[str] = "productos"
    venture_field: ClassVar[str] = "emprendimiento"
    search_fields: ClassVar[tuple[str, ...]] = ("nombre", "descripcion")


@dataclass(frozen=True)
class SearchCollections:
    """Collection handles and collation shared by every search query."""

    vendors: Collection
    ventures: Collection
    products: Collection
    collation: Collation

    @classmethod
    def from_database(cls, db: Database, config: Settings | None = None) -> "SearchCollections":
        config = config or default_settings
        return cls(
            vendors=db[config.vendor_collection or Emprendedor.collection_name],
            ventures=db[config.venture_collection or Emprendimiento.collection_name],
            products=db[config.product_collection or Producto.collection_name],
            collation=Collation(locale=config.search_locale, strength=config.search_collation_strength),
        )

    @property
    def vendor_collection_name(self) -> str:
        return self.vendors.name

    @property
    def venture_collection_name(self) -> str:
        return self.ventures.name


def owner_full_name(owner_path: str) -> dict[str, Any]:
    """Aggregation expression joining an owner's first and last name."""

    return {
        "$concat": [
            {"$ifNull": [f"${owner_path}.nombre", ""]},
            " ",
            {"$ifNull": [f"${owner_path}.apellido", ""]},
        ]
    }
