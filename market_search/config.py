"""Application configuration and constants."""
from __future__ import annotations

import os
from dataclasses import dataclass


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name)
    return value if value is not None else default


def _get_bool(name: str, default: str) -> bool:
    return _get_env(name, default).lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class Settings:
    """Simple settings container with environment variable overrides."""

    mongo_url: str = _get_env("MONGO_URL", "mongodb://localhost:27017")
    mongo_db: str = _get_env("MONGO_DB", "marketplace")
    search_locale: str = _get_env("SEARCH_LOCALE", "es")
    search_collation_strength: int = int(_get_env("SEARCH_COLLATION_STRENGTH", "1"))
    default_limit: int = int(_get_env("SEARCH_DEFAULT_LIMIT", "10"))
    max_limit: int = int(_get_env("SEARCH_MAX_LIMIT", "50"))
    suggest_limit: int = int(_get_env("SUGGEST_LIMIT", "5"))
    smart_prefix_min_length: int = int(_get_env("SMART_PREFIX_MIN_LENGTH", "3"))
    vendor_collection: str = _get_env("VENDOR_COLLECTION", "")
    venture_collection: str = _get_env("VENTURE_COLLECTION", "")
    product_collection: str = _get_env("PRODUCT_COLLECTION", "")
    ensure_indexes_on_startup: bool = _get_bool("ENSURE_INDEXES", "true")
    load_on_startup: bool = _get_bool("LOAD_ON_STARTUP", "false")
    seed_path: str = _get_env("SEED_PATH", "seed.json")
    log_level: str = _get_env("LOG_LEVEL", "INFO")


settings = Settings()
