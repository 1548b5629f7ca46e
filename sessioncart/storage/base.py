"""
Base storage driver interface
"""
import json
from typing import Any, Dict, Optional

from sessioncart.exceptions import MethodNotSupportedError


class CartStorage:
    """
    Key/value storage for cart snapshots

    Drivers override the operations they support; the rest raise
    MethodNotSupportedError. Values go through serialise() before put()
    and come back through parse() after get().
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = dict(config or {})

    def has(self, key: str) -> bool:
        """Check if key exists"""
        raise MethodNotSupportedError("has")

    def get(self, key: str) -> Any:
        """Get the raw stored value for a key, None when absent"""
        raise MethodNotSupportedError("get")

    def put(self, key: str, value: Any) -> Any:
        """Store a raw value under a key"""
        raise MethodNotSupportedError("put")

    def clear(self) -> None:
        """Remove everything this storage holds"""
        raise MethodNotSupportedError("clear")

    def serialise(self, data: Dict[str, Any]) -> Any:
        """Convert a snapshot dictionary to the stored form"""
        return json.dumps(data)

    def parse(self, raw: Any) -> Dict[str, Any]:
        """Convert a stored value back to a snapshot dictionary"""
        return json.loads(raw)
