"""
Configuration management for the cart library
"""
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings


class StorageDriverConfig(BaseModel):
    """Storage entry: which driver to use and the options handed to it"""

    driver: Optional[str] = None
    config: Dict[str, Any] = Field(default_factory=dict)


def _default_storages() -> Dict[str, StorageDriverConfig]:
    return {
        "local": StorageDriverConfig(
            driver="local",
            config={"path": "cart.storage.json", "encoding": "utf-8"},
        ),
        "memory": StorageDriverConfig(driver="memory"),
        "redis": StorageDriverConfig(
            driver="redis",
            config={
                "url": "redis://localhost:6379/0",
                "prefix": "cart",
                "ttl_seconds": 3600,
            },
        ),
        "mongo": StorageDriverConfig(
            driver="mongo",
            config={
                "uri": "mongodb://localhost:27017",
                "database": "cartdb",
                "collection": "carts",
                "timeout_ms": 5000,
            },
        ),
    }


class Config(BaseSettings):
    """Library configuration loaded from environment variables"""

    # Logging (see sessioncart.logging.configure_logging)
    service_name: str = "cart"
    log_level: str = "INFO"
    log_format: str = "json"

    # Storage
    default: Optional[str] = "local"
    storages: Dict[str, StorageDriverConfig] = Field(default_factory=_default_storages)

    # Throttling, in seconds. 0 disables it.
    write_throttle_wait: float = 0.0
    read_throttle_wait: float = 0.0

    class Config:
        env_prefix = "CART_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create configuration singleton"""
    global _config
    if _config is None:
        _config = Config()
    return _config


def load_config() -> Config:
    """Load configuration from environment"""
    return get_config()
