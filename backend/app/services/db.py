# async mongodb client for the backend api
# uses motor for non-blocking operations

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo.errors import PyMongoError
from app.config import settings
from app.services.errors import StoreUnavailable

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        """establish connection to mongodb.

        an unreachable server is not fatal: the client stays configured and
        record stores fall back to local storage until it comes back.
        """
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(
            settings.MONGODB_URI,
            serverSelectionTimeoutMS=settings.MONGODB_TIMEOUT_MS,
        )
        self.db = self.client[settings.MONGODB_DATABASE]

        # verify connection
        try:
            await self.client.admin.command("ping")
            logger.info("MongoDB connection established")
        except PyMongoError as e:
            logger.warning(f"MongoDB not reachable, serving from local fallback: {e}")

    async def close(self):
        """close mongodb connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    # collection accessors

    def _collection(self, name: str):
        if self.db is None:
            raise StoreUnavailable("MongoDB client is not connected")
        return self.db[name]

    @property
    def users(self):
        return self._collection("users")

    @property
    def patients(self):
        return self._collection("patients")

    @property
    def therapy_plans(self):
        return self._collection("therapy_plans")


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
