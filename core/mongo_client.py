"""
MongoDB Store for the fundraising platform

Process-scoped wrapper around a single ``AsyncMongoClient``. Created once at
startup, injected into repositories, closed at shutdown.

Usage:
    from core.mongo_client import MongoStore

    store = MongoStore(infra_config)
    await store.connect()

    async def write(session):
        await store.collection("campaigns").insert_one(doc, session=session)

    await store.run_in_transaction(write)
"""

import logging
from typing import Any, Awaitable, Callable, Optional

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from .config import InfraConfig

logger = logging.getLogger(__name__)


class StoreUnavailableError(Exception):
    """Raised when the document store cannot be configured or reached"""
    pass


class MongoStore:
    """
    MongoDB store wrapper.

    Provides:
    - Explicit connect/close lifecycle with fail-fast ping
    - Collection access by name
    - Optional multi-document transactions (replica set required)
    """

    def __init__(self, config: InfraConfig, client: Optional[AsyncMongoClient] = None):
        self.config = config
        self._client: Optional[AsyncMongoClient] = client
        self._db: Optional[AsyncDatabase] = None
        self.transactions_enabled = config.mongo_transactions

    async def connect(self) -> None:
        """Open the client and verify the server answers"""
        if self._client is None:
            if not self.config.mongo_uri:
                raise StoreUnavailableError("MONGO_URI environment variable is required")
            self._client = AsyncMongoClient(
                self.config.mongo_uri,
                serverSelectionTimeoutMS=self.config.mongo_timeout_ms,
                tz_aware=True,
            )

        try:
            await self._client.admin.command("ping")
        except PyMongoError as e:
            logger.error(f"MongoDB connection failed: {e}")
            raise StoreUnavailableError(f"MongoDB connection failed: {e}") from e

        self._db = self._client[self.config.mongo_db_name]
        logger.info(f"MongoDB connected, database: {self.config.mongo_db_name}")

    async def close(self) -> None:
        """Close the client"""
        if self._client is not None:
            await self._client.close()
            self._client = None
            self._db = None
            logger.info("MongoDB connection closed")

    async def health_check(self) -> bool:
        """Ping the server"""
        if self._client is None:
            return False
        try:
            await self._client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Health check failed: {e}")
            return False

    @property
    def db(self) -> AsyncDatabase:
        if self._db is None:
            raise RuntimeError("Store not connected. Call connect() first.")
        return self._db

    def collection(self, name: str) -> AsyncCollection:
        """Get a collection handle"""
        return self.db[name]

    async def run_in_transaction(self, callback: Callable[[Any], Awaitable[Any]]) -> Any:
        """
        Await ``callback(session)`` inside a multi-document transaction.

        The driver retries the callback on TransientTransactionError and the
        commit on UnknownTransactionCommitResult. With transactions disabled the
        callback gets ``None`` and must compensate its own partial writes.
        """
        if not self.transactions_enabled or self._client is None:
            return await callback(None)

        async with self._client.start_session() as session:
            return await session.with_transaction(callback)


__all__ = ["MongoStore", "StoreUnavailableError"]
