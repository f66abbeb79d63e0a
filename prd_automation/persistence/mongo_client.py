"""
Mongo Client — raw database connection management.
"""

from __future__ import annotations

import logging
from typing import Any

from prd_automation.config import get_settings

logger = logging.getLogger(__name__)


class MongoClient:
    """Thin lazy wrapper around pymongo."""

    def __init__(self, uri: str | None = None, database: str | None = None):
        settings = get_settings()
        self.uri = uri or settings.mongodb_uri
        self.database_name = database or settings.mongodb_database
        self._client: Any = None
        self._db: Any = None

    def connect(self) -> None:
        """Establish the MongoDB connection."""
        from pymongo import MongoClient as PyMongoClient

        self._client = PyMongoClient(self.uri)
        self._db = self._client[self.database_name]
        logger.info(f"Connected to MongoDB: {self.database_name}")

    def get_database(self) -> Any:
        """Return the database handle, connecting on first use."""
        if self._db is None:
            self.connect()
        return self._db

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")
