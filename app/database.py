"""MongoDB connection lifecycle for the Application and Job collections."""

import logging
from typing import Optional
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from beanie import init_beanie
from pymongo.errors import PyMongoError

from app.config import settings
from app.database_utils import DatabaseConnectionError
from app.models import DOCUMENT_MODELS

logger = logging.getLogger(__name__)

# Process-wide client, set by connect_to_mongo()
client: Optional[AsyncIOMotorClient] = None


async def connect_to_mongo(url: Optional[str] = None,
                           database_name: Optional[str] = None) -> AsyncIOMotorDatabase:
    """Open the Motor client and register document models with Beanie.

    Beanie creates the declared indexes here, including the unique
    (user_id, job_id) index that backs duplicate-apply detection.

    Raises:
        DatabaseConnectionError: the server did not answer the ping
    """
    global client

    url = url or settings.mongodb_url
    database_name = database_name or settings.database_name
    logger.info(f"Connecting to MongoDB database '{database_name}'")

    client = AsyncIOMotorClient(
        url,
        maxPoolSize=settings.mongodb_max_connections,
        minPoolSize=settings.mongodb_min_connections
    )
    database = client[database_name]

    try:
        await client.admin.command('ping')
        await init_beanie(database=database, document_models=DOCUMENT_MODELS)
    except PyMongoError as e:
        logger.error(f"Failed to connect to MongoDB: {e}")
        client.close()
        client = None
        raise DatabaseConnectionError(f"MongoDB unavailable: {e}") from e

    logger.info(f"MongoDB ready, models: {[model.__name__ for model in DOCUMENT_MODELS]}")
    return database


async def close_mongo_connection():
    """Close the client if one is open."""
    global client
    if client is not None:
        client.close()
        client = None
        logger.info("MongoDB connection closed")


def get_client() -> Optional[AsyncIOMotorClient]:
    return client
