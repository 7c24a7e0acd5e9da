# async mongodb client for the analytics api
# uses motor for non-blocking reads of the coaching collections

import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from coach_analytics.config import settings

logger = logging.getLogger(__name__)


class Database:
    """async mongodb connection manager"""

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.db: Optional[AsyncIOMotorDatabase] = None

    async def connect(self):
        if self.client is not None:
            return

        logger.info(f"Connecting to MongoDB database: {settings.MONGODB_DATABASE}")
        self.client = AsyncIOMotorClient(settings.MONGODB_URI)
        self.db = self.client[settings.MONGODB_DATABASE]

        await self.client.admin.command("ping")
        logger.info("MongoDB connection established")

    async def close(self):
        if self.client:
            self.client.close()
            self.client = None
            self.db = None
            logger.info("MongoDB connection closed")

    # collection accessors

    @property
    def doctors(self):
        return self.db["doctors"]

    @property
    def clients(self):
        return self.db["clients"]

    @property
    def meal_plans(self):
        return self.db["meal_plans"]

    @property
    def diet_logs(self):
        return self.db["diet_logs"]

    @property
    def activity_entries(self):
        return self.db["activity_entries"]

    @property
    def weight_logs(self):
        return self.db["weight_logs"]


# singleton instance
db = Database()


async def get_db() -> Database:
    """dependency injection for database access"""
    return db
