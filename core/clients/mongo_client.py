import logging
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import PyMongoError
from core.handlers.env_handler import env
from core.base.exception import ServiceLevelError

logger = logging.getLogger(__name__)

mongo_uri = env.mongo["uri"]
db_name = env.mongo["db"]

class MongoClient:
    def __init__(self, uri: str = mongo_uri):
        self.client = AsyncIOMotorClient(uri)

    async def ping(self):
        """Ping the newsletter database and return it if no exceptions."""
        db = self.client.get_database(db_name)
        try:
            ping_response = await db.command("ping")
        except PyMongoError as e:
            raise ServiceLevelError(message=f"Problem connecting to cluster {db_name}: {e}")
        if int(ping_response["ok"]) != 1:
            raise ServiceLevelError(message=f"Problem connecting to cluster: {db_name}")
        logger.info("Database [%s] connected successfully", db_name)
        return db

    async def ensure_indexes(self, db):
        """Email and public id both identify a subscriber."""
        subscribers = db["mailing_list_subscribers"]
        await subscribers.create_index("email", unique=True)
        await subscribers.create_index("public_id", unique=True)

    async def close(self):
        """Close MongoDB client"""
        self.client.close()
        logger.info("MongoDB client closed")
