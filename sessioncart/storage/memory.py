"""
In-memory storage for development, tests, or when no backing store is available
"""
from typing import Any, Dict, Optional

import structlog

from sessioncart.storage.base import CartStorage


class MemoryCartStorage(CartStorage):
    """Keeps serialised carts in a process-local dictionary"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self._store: Dict[str, Any] = {}
        self.logger = structlog.get_logger().bind(component="memory_storage")

    def has(self, key: str) -> bool:
        return bool(self._store.get(key))

    def get(self, key: str) -> Any:
        return self._store.get(key)

    def put(self, key: str, value: Any) -> Any:
        self._store[key] = value
        self.logger.debug("Cart written", key=key)
        return value

    def clear(self) -> None:
        self._store.clear()
        self.logger.info("Memory storage cleared")
