"""
Redis storage with a key prefix and renewable TTL
"""
from typing import Any, Dict, Optional

import redis
import structlog

from sessioncart.storage.base import CartStorage


class RedisCartStorage(CartStorage):
    """Stores each session's serialised cart under "{prefix}:{key}" """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)
        self.prefix = self.config.get("prefix") or "cart"
        self.ttl = self.config.get("ttl_seconds")
        self.client = self.config.get("client") or redis.Redis.from_url(
            self.config.get("url") or "redis://localhost:6379/0",
            decode_responses=True,
        )
        self.logger = structlog.get_logger().bind(component="redis_storage", prefix=self.prefix)

    def _key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    def has(self, key: str) -> bool:
        return bool(self.client.exists(self._key(key)))

    def get(self, key: str) -> Any:
        return self.client.get(self._key(key))

    def put(self, key: str, value: Any) -> Any:
        name = self._key(key)
        with self.client.pipeline() as pipe:
            pipe.set(name, value)
            if self.ttl:
                pipe.expire(name, self.ttl)
            pipe.execute()
        self.logger.debug("Cart written", key=key)
        return value

    def clear(self) -> None:
        keys = list(self.client.scan_iter(match=f"{self.prefix}:*"))
        if keys:
            self.client.delete(*keys)
        self.logger.info("Redis storage cleared", deleted=len(keys))
