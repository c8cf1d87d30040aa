"""MongoDB connection used by the API and the terminal client.

pymongo is synchronous; search code runs each call through
``asyncio.to_thread``. The client is created lazily once per process and only
at composition time; the search service receives collection handles instead.
"""
from __future__ import annotations

import logging
from functools import lru_cache

from pymongo import MongoClient
from pymongo.database import Database

from .config import settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_client() -> MongoClient:
    logger.info("Connecting to MongoDB at %s", settings.mongo_url)
    return MongoClient(settings.mongo_url, tz_aware=True)


def get_database() -> Database:
    return get_client()[settings.mongo_db]
