"""
MongoDB storage: one document per session key
"""
import copy
from typing import Any, Dict, Optional

import structlog
from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure

from sessioncart.storage.base import CartStorage


class MongoCartStorage(CartStorage):
    """Stores snapshots as native documents in a collection"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.uri = self.config.get("uri") or "mongodb://localhost:27017"
        self.database = self.config.get("database") or "cartdb"
        self.collection_name = self.config.get("collection") or "carts"
        self.timeout_ms = self.config.get("timeout_ms") or 5000
        self.client: Optional[MongoClient] = self.config.get("client")
        self.logger = structlog.get_logger().bind(
            component="mongo_storage",
            database=self.database,
            collection=self.collection_name,
        )

    def connect(self) -> None:
        """Establish connection to MongoDB"""
        try:
            self.client = MongoClient(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                connectTimeoutMS=self.timeout_ms,
            )
            self.client.admin.command('ping')
            self.logger.info("Connected to MongoDB", uri=self.uri)
        except ConnectionFailure as e:
            self.logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    def close(self) -> None:
        """Close MongoDB connection"""
        if self.client:
            self.client.close()
            self.client = None
            self.logger.info("MongoDB connection closed")

    @property
    def collection(self) -> Collection:
        if self.client is None:
            self.connect()
        return self.client[self.database][self.collection_name]

    def has(self, key: str) -> bool:
        return self.collection.count_documents({"_id": key}, limit=1) > 0

    def get(self, key: str) -> Any:
        doc = self.collection.find_one({"_id": key})
        if doc is None:
            return None
        return doc.get("content")

    def put(self, key: str, value: Any) -> Any:
        try:
            self.collection.replace_one({"_id": key}, {"_id": key, "content": value}, upsert=True)
        except Exception as e:
            self.logger.error("Error writing cart", key=key, error=str(e))
            raise
        self.logger.debug("Cart written", key=key)
        return value

    def clear(self) -> None:
        result = self.collection.delete_many({})
        self.logger.info("Mongo storage cleared", deleted=result.deleted_count)

    def serialise(self, data: Dict[str, Any]) -> Any:
        return copy.deepcopy(data)

    def parse(self, raw: Any) -> Dict[str, Any]:
        return copy.deepcopy(raw)
