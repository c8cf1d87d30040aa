"""Normalization of raw search query parameters.

Every value arrives as an optional string straight from the query string.
Nothing here raises: malformed numbers fall back to defaults and are then
clamped, so a single request can never ask for an unbounded page.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from .models import EntityType

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 50
DEFAULT_MODE = "smart"
# Largest skip the store can encode as a signed 64-bit integer.
MAX_SKIP = 2**63 - 1

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_ENTITY_TAGS = {entity.value: entity for entity in EntityType}


@dataclass(frozen=True)
class SearchParams:
    term: str
    entity_types: tuple[EntityType, ...]
    page: int
    limit: int
    skip: int
    mode: str


def parse_int(raw: Optional[str], default: int) -> int:
    """Parse the leading integer of ``raw`` (``"12abc"`` -> 12), else ``default``."""
    if raw is None:
        return default
    match = _LEADING_INT_RE.match(str(raw))
    if not match:
        return default
    return int(match.group(1))


def parse_entity_types(raw: Optional[str]) -> tuple[EntityType, ...]:
    if raw is None or not raw.strip():
        return EntityType.all()
    selected: list[EntityType] = []
    for token in raw.split(","):
        entity = _ENTITY_TAGS.get(token.strip().lower())
        if entity is not None and entity not in selected:
            selected.append(entity)
    return tuple(selected)


def clamp_page(page: int, limit: int = MAX_LIMIT) -> int:
    """At least 1, and small enough that ``(page - 1) * limit`` fits ``MAX_SKIP``."""
    return min(max(page, 1), MAX_SKIP // max(limit, 1) + 1)


def clamp_limit(limit: int, max_limit: int = MAX_LIMIT) -> int:
    return min(max(limit, 1), max_limit)


def parse_params(
    q: Optional[str] = None,
    types: Optional[str] = None,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    mode: Optional[str] = None,
    *,
    default_limit: int = DEFAULT_LIMIT,
    max_limit: int = MAX_LIMIT,
) -> SearchParams:
    term = (q or "").strip()
    page_size = clamp_limit(parse_int(limit, default_limit), max_limit)
    page_number = clamp_page(parse_int(page, DEFAULT_PAGE), page_size)
    return SearchParams(
        term=term,
        entity_types=parse_entity_types(types),
        page=page_number,
        limit=page_size,
        skip=(page_number - 1) * page_size,
        mode=(mode or DEFAULT_MODE).strip().lower(),
    )
