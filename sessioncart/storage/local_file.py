"""
Local JSON file storage: one file holding every session keyed by session id
"""
import json
import os
from typing import Any, Dict, Optional

import structlog

from sessioncart.storage.base import CartStorage


class LocalFileCartStorage(CartStorage):
    """Stores serialised carts in a single JSON object on disk"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.path = os.path.abspath(self.config.get("path") or "cart.storage.json")
        self.encoding = self.config.get("encoding") or "utf-8"
        self.logger = structlog.get_logger().bind(component="local_file_storage", path=self.path)
        if not os.path.exists(self.path):
            self._write({})
            self.logger.info("Storage file created")

    def _read(self) -> Dict[str, Any]:
        with open(self.path, "r", encoding=self.encoding) as f:
            return json.load(f)

    def _write(self, data: Dict[str, Any]) -> None:
        with open(self.path, "w", encoding=self.encoding) as f:
            json.dump(data, f)

    def has(self, key: str) -> bool:
        return bool(self._read().get(key))

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def put(self, key: str, value: Any) -> Any:
        data = self._read()
        data[key] = value
        self._write(data)
        self.logger.debug("Cart written", key=key)
        return value

    def clear(self) -> None:
        self._write({})
        self.logger.info("Storage file cleared")
