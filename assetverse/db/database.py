# assetverse/db/database.py
import logging
from typing import Optional

import motor.motor_asyncio
from beanie import init_beanie

from assetverse.core.config import MONGODB_URL, DATABASE_NAME, TRANSACTION_MAX_ATTEMPTS
from assetverse.core.directory import UserDirectory
from assetverse.core.errors import StoreError
from assetverse.core.lifecycle import LifecycleEngine
from assetverse.db.stores import MongoStore, MongoTransactor
from assetverse.models.asset import Asset
from assetverse.models.asset_request import AssetRequest
from assetverse.models.assignment import AssignedAsset
from assetverse.models.user import User

logger = logging.getLogger(__name__)

_client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
_engine: Optional[LifecycleEngine] = None
_directory: Optional[UserDirectory] = None


async def init_db() -> motor.motor_asyncio.AsyncIOMotorClient:
    """Connect to MongoDB, bind the Beanie models and build the engine."""
    global _client, _engine, _directory
    logger.info("Connecting to MongoDB...")
    _client = motor.motor_asyncio.AsyncIOMotorClient(MONGODB_URL, tz_aware=True)
    database = _client[DATABASE_NAME]
    logger.info(f"Using database: {DATABASE_NAME}")

    await init_beanie(
        database=database,
        document_models=[Asset, AssetRequest, AssignedAsset, User],
    )
    logger.info("Beanie initialization complete for all models.")

    users = MongoStore(User)
    _engine = LifecycleEngine(
        assets=MongoStore(Asset),
        requests=MongoStore(AssetRequest),
        assignments=MongoStore(AssignedAsset),
        transactor=MongoTransactor(_client, max_attempts=TRANSACTION_MAX_ATTEMPTS),
    )
    _directory = UserDirectory(users=users)
    return _client


def close_db() -> None:
    global _client
    if _client is not None:
        _client.close()
        _client = None
        logger.info("MongoDB connection closed.")


def get_client() -> motor.motor_asyncio.AsyncIOMotorClient:
    if _client is None:
        raise StoreError("Database is not initialized.")
    return _client


# --- FastAPI dependencies ---
def get_engine() -> LifecycleEngine:
    if _engine is None:
        raise StoreError("Database is not initialized.")
    return _engine


def get_directory() -> UserDirectory:
    if _directory is None:
        raise StoreError("Database is not initialized.")
    return _directory
