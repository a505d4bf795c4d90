from motor.motor_asyncio import AsyncIOMotorClient

from config.env import STORE_BACKEND, MONGO_URI, MONGO_TIMEOUT_MS
from stores.base import MarketStore
from stores.memory import InMemoryStore
from stores.mongo import MongoStore

_client = None
_store = None


def get_db():
    global _client
    if _client is None:
        if not MONGO_URI:
            raise RuntimeError("MONGODB_URI not set")
        _client = AsyncIOMotorClient(MONGO_URI, serverSelectionTimeoutMS=MONGO_TIMEOUT_MS)
    return _client.get_default_database()


def build_store(backend: str = STORE_BACKEND) -> MarketStore:
    if backend == "memory":
        return InMemoryStore()
    if backend == "mongo":
        return MongoStore(get_db())
    raise RuntimeError(f"Unknown STORE_BACKEND: {backend}")


def get_store() -> MarketStore:
    global _store
    if _store is None:
        _store = build_store()
    return _store
