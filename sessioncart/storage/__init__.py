"""
Storage drivers for cart snapshots
"""
from sessioncart.storage.base import CartStorage
from sessioncart.storage.local_file import LocalFileCartStorage
from sessioncart.storage.memory import MemoryCartStorage
from sessioncart.storage.mongo import MongoCartStorage
from sessioncart.storage.redis_store import RedisCartStorage


DEFAULT_DRIVERS = {
    "local": LocalFileCartStorage,
    "memory": MemoryCartStorage,
    "redis": RedisCartStorage,
    "mongo": MongoCartStorage,
}

__all__ = [
    "CartStorage",
    "LocalFileCartStorage",
    "MemoryCartStorage",
    "MongoCartStorage",
    "RedisCartStorage",
    "DEFAULT_DRIVERS",
]
