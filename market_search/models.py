"""Pydantic models for request/response payloads."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, Field


class EntityType(str, Enum):
    PRODUCTOS = "productos"
    EMPRENDIMIENTOS = "emprendimientos"
    EMPRENDEDORES = "emprendedores"

    @classmethod
    def all(cls) -> tuple["EntityType", ...]:
        return (cls.PRODUCTOS, cls.EMPRENDIMIENTOS, cls.EMPRENDEDORES)


class PatternMode(str, Enum):
    SMART = "smart"
    PREFIX = "prefix"
    CONTAINS = "contains"


Document = Dict[str, Any]


@dataclass
class SearchPage:
    """One page of rows for a single entity type plus its total match count."""

    items: List[Document] = field(default_factory=list)
    total: int = 0


@dataclass
class UnifiedResult:
    query: str
    page: int
    limit: int
    results: Dict[EntityType, List[Document]] = field(default_factory=dict)
    counts: Dict[EntityType, int] = field(default_factory=dict)


@dataclass
class SuggestionResult:
    query: str
    suggestions: Dict[EntityType, List[Document]] = field(default_factory=dict)


class SearchPageResponse(BaseModel):
    q: str
    page: int
    limit: int
    results: List[Dict[str, Any]]
    total: int


class UnifiedSearchResponse(BaseModel):
    q: str
    page: int
    limit: int
    results: Dict[EntityType, List[Dict[str, Any]]] = Field(default_factory=dict)
    counts: Dict[EntityType, int] = Field(default_factory=dict)


class Suggestions(BaseModel):
    productos: List[Dict[str, Any]] = Field(default_factory=list)
    emprendimientos: List[Dict[str, Any]] = Field(default_factory=list)
    emprendedores: List[Dict[str, Any]] = Field(default_factory=list)


class SuggestResponse(BaseModel):
    q: str
    sugerencias: Suggestions


class HealthResponse(BaseModel):
    mongodb: str
    database: str
    documents: Dict[str, int] = Field(default_factory=dict)
