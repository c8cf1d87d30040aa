"""Shared fixtures: an in-memory stand-in for the MongoDB collections.

Only the query language the search code emits is evaluated: filters with
``$or``/``$regex``, inclusion projections, skip/limit, counts, and the
aggregation stages ``$lookup``, ``$unwind``, ``$addFields``, ``$match``,
``$project``, ``$skip``, ``$limit`` and ``$count``. Like MongoDB, ``$regex``
matches ignore the collation passed with a query.
"""
from __future__ import annotations

import copy
import re

import pytest
from bson import ObjectId
from fastapi.testclient import TestClient
from pymongo.errors import OperationFailure

from market_search.config import Settings
from market_search.documents import SearchCollections
from market_search.main import create_app
from market_search.search_service import SearchService

MISSING = object()


def _get(doc, path):
    value = doc
    for part in path.split("."):
        if not isinstance(value, dict) or part not in value:
            return MISSING
        value = value[part]
    return value


def _set(doc, path, value):
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


def _unset(doc, path):
    parts = path.split(".")
    target = doc
    for part in parts[:-1]:
        target = target.get(part, {})
    target.pop(parts[-1], None)


def _matches(doc, filter_):
    for key, condition in filter_.items():
        if key == "$or":
            if not any(_matches(doc, sub) for sub in condition):
                return False
            continue
        value = _get(doc, key)
        if isinstance(condition, dict) and "$regex" in condition:
            regex = condition["$regex"]
            if not isinstance(value, str):
                return False
            if not regex.search(value):
                return False
        elif value is MISSING or value != condition:
            return False
    return True


def _evaluate(doc, expression):
    if isinstance(expression, str) and expression.startswith("$"):
        return _get(doc, expression[1:])
    if isinstance(expression, dict):
        if "$concat" in expression:
            parts = [_evaluate(doc, part) for part in expression["$concat"]]
            if any(part is MISSING or part is None for part in parts):
                return None
            return "".join(parts)
        if "$ifNull" in expression:
            value, default = expression["$ifNull"]
            resolved = _evaluate(doc, value)
            return _evaluate(doc, default) if resolved is MISSING or resolved is None else resolved
    return expression


def _project(doc, spec):
    if spec is None:
        return copy.deepcopy(doc)
    projected = {}
    if spec.get("_id", 1) and "_id" in doc:
        projected["_id"] = doc["_id"]
    for key, rule in spec.items():
        if key == "_id":
            continue
        value = _get(doc, key) if rule in (1, True) else _evaluate(doc, rule)
        if value is not MISSING:
            _set(projected, key, copy.deepcopy(value))
    return projected


class FakeCollection:
    def __init__(self, database, name):
        self.database = database
        self.name = name
        self.documents = []
        self.indexes = []

    def _read(self, operation, payload):
        self.database.calls.append((self.name, operation, payload))
        if self.name in self.database.fail_on:
            raise OperationFailure(f"{operation} failed on {self.name}")

    def insert_many(self, documents):
        for document in documents:
            document.setdefault("_id", ObjectId())
            self.documents.append(copy.deepcopy(document))

    def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return "_".join(f"{field}_{direction}" for field, direction in keys)

    def estimated_document_count(self):
        return len(self.documents)

    def find(self, filter_=None, projection=None, skip=0, limit=0, collation=None):
        self._read("find", filter_)
        rows = [doc for doc in self.documents if _matches(doc, filter_ or {})]
        rows = rows[skip:]
        if limit:
            rows = rows[:limit]
        return [_project(doc, projection) for doc in rows]

    def count_documents(self, filter_, collation=None):
        self._read("count_documents", filter_)
        return sum(1 for doc in self.documents if _matches(doc, filter_))

    def aggregate(self, pipeline, collation=None, **kwargs):
        self._read("aggregate", pipeline)
        rows = copy.deepcopy(self.documents)
        for stage in pipeline:
            (operator, argument), = stage.items()
            if operator == "$lookup":
                foreign = self.database[argument["from"]].documents
                for row in rows:
                    local = _get(row, argument["localField"])
                    row[argument["as"]] = [
                        copy.deepcopy(other) for other in foreign if _get(other, argument["foreignField"]) == local
                    ]
            elif operator == "$unwind":
                options = argument if isinstance(argument, dict) else {"path": argument}
                path = options["path"][1:]
                unwound = []
                for row in rows:
                    values = _get(row, path)
                    if isinstance(values, list) and values:
                        for value in values:
                            item = copy.deepcopy(row)
                            _set(item, path, value)
                            unwound.append(item)
                    elif options.get("preserveNullAndEmptyArrays"):
                        _unset(row, path)
                        unwound.append(row)
                rows = unwound
            elif operator == "$addFields":
                for row in rows:
                    computed = {key: _evaluate(row, expression) for key, expression in argument.items()}
                    for key, value in computed.items():
                        if value is not MISSING:
                            _set(row, key, value)
            elif operator == "$match":
                rows = [row for row in rows if _matches(row, argument)]
            elif operator == "$project":
                rows = [_project(row, argument) for row in rows]
            elif operator == "$skip":
                rows = rows[argument:]
            elif operator == "$limit":
                rows = rows[:argument]
            elif operator == "$count":
                rows = [{argument: len(rows)}] if rows else []
            else:
                raise NotImplementedError(operator)
        return rows


class FakeDatabase:
    def __init__(self, name="marketplace"):
        self.name = name
        self.calls = []
        self.fail_on = set()
        self._collections = {}

    def __getitem__(self, name):
        if name not in self._collections:
            self._collections[name] = FakeCollection(self, name)
        return self._collections[name]

    def command(self, name):
        if self.fail_on:
            raise OperationFailure(f"{name} failed")
        return {"ok": 1.0}


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def config():
    return Settings(vendor_collection="", venture_collection="", product_collection="")


@pytest.fixture
def collections(db, config):
    return SearchCollections.from_database(db, config)


@pytest.fixture
def catalog(db, collections):
    """Two vendors, two ventures and five products; returns their ids by name."""

    maria, jose = ObjectId(), ObjectId()
    panaderia, cafe = ObjectId(), ObjectId()
    collections.vendors.insert_many(
        [
            {"_id": maria, "nombre": "Maria", "apellido": "Lopez", "email": "maria.lopez@example.com",
             "password": "hashed", "rol": "Emprendedor", "estado_Emprendedor": "Activo"},
            {"_id": jose, "nombre": "José", "apellido": "Pérez", "email": "jose.perez@example.com",
             "password": "hashed", "rol": "Emprendedor", "estado_Emprendedor": "Activo"},
        ]
    )
    collections.ventures.insert_many(
        [
            {"_id": panaderia, "nombreComercial": "Panaderia Maria", "slug": "panaderia-maria",
             "descripcion": "Pan artesanal", "ubicacion": {"ciudad": "Quito"},
             "contacto": {"telefono": "0999", "email": "hola@panaderia.ec", "facebook": "pm"},
             "estado": "Activo", "emprendedor": maria},
            {"_id": cafe, "nombreComercial": "Café Andino", "slug": "cafe-andino",
             "descripcion": "Tostaduría", "ubicacion": {"ciudad": "Cuenca"},
             "estado": "Activo", "emprendedor": jose},
        ]
    )
    products = {name: ObjectId() for name in ("Pan Integral", "Pan de Yuca", "Torta de Chocolate", "Café Molido", "Taza Artesanal")}
    collections.products.insert_many(
        [
            {"_id": products["Pan Integral"], "nombre": "Pan Integral", "descripcion": "Harina integral",
             "precio": 1.5, "stock": 20, "imagen": None, "imagenPublicId": "img1", "emprendimiento": panaderia},
            {"_id": products["Pan de Yuca"], "nombre": "Pan de Yuca", "descripcion": "", "precio": 0.5,
             "stock": 40, "emprendimiento": panaderia},
            {"_id": products["Torta de Chocolate"], "nombre": "Torta de Chocolate", "descripcion": "",
             "precio": 12, "stock": 3, "emprendimiento": panaderia},
            {"_id": products["Café Molido"], "nombre": "Café Molido", "descripcion": "Grano de altura",
             "precio": 8, "stock": 10, "emprendimiento": cafe},
            {"_id": products["Taza Artesanal"], "nombre": "Taza Artesanal", "descripcion": "Cerámica",
             "precio": 6, "stock": 5, "emprendimiento": cafe},
        ]
    )
    db.calls.clear()
    return {"maria": maria, "jose": jose, "panaderia": panaderia, "cafe": cafe, **products}


@pytest.fixture
def service(collections):
    return SearchService(collections)


@pytest.fixture
def client(db, config, catalog):
    return TestClient(create_app(database=db, config=config))
