# tests/conftest.py
import logging
import os
import uuid

import motor.motor_asyncio
import pymongo
import pytest
import pytest_asyncio
from pymongo.errors import ConnectionFailure

# Silence verbose loggers
logging.getLogger("pymongo").setLevel(logging.ERROR)
logging.getLogger("motor").setLevel(logging.ERROR)


# --- Constants ---
TEST_MONGO_DB_NAME = "pytest_async_mongo_query"
MONGO_URI = os.getenv("TEST_MONGO_URI", "mongodb://localhost:27017")


# --- Availability Checks ---
def is_mongodb_available() -> bool:
    """Ping the server synchronously with a short timeout."""
    client = pymongo.MongoClient(MONGO_URI, serverSelectionTimeoutMS=1000)
    try:
        client.admin.command("ping")
        logging.info(f"MongoDB found and responsive at {MONGO_URI}")
        return True
    except ConnectionFailure:
        logging.warning(
            f"MongoDB not found or not responsive at {MONGO_URI}. "
            "Skipping MongoDB tests."
        )
        return False
    except Exception as e:
        logging.warning(
            f"Error checking MongoDB connection at {MONGO_URI}: {e}. "
            "Skipping MongoDB tests."
        )
        return False
    finally:
        client.close()


MONGODB_AVAILABLE = is_mongodb_available()


@pytest_asyncio.fixture
async def motor_client():
    if not MONGODB_AVAILABLE:
        pytest.skip(f"MongoDB not reachable at {MONGO_URI}")
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_URI)
    try:
        yield client
    finally:
        client.close()


@pytest_asyncio.fixture
async def mongo_database(motor_client):
    """A throwaway database per test, dropped afterwards."""
    name = f"{TEST_MONGO_DB_NAME}_{uuid.uuid4().hex[:8]}"
    try:
        yield name
    finally:
        await motor_client.drop_database(name)
