"""
Session shopping cart with a deterministic pricing engine
"""
from sessioncart.compute import ComputeEngine, ComputeHooks, compute
from sessioncart.config import Config, StorageDriverConfig, get_config, load_config
from sessioncart.exceptions import (
    CartError,
    DriverNotSupportedError,
    InvalidConfigError,
    MethodNotSupportedError,
    OperationFailed,
    ParseError,
    TargetNotFoundError,
)
from sessioncart.loader import DataLoader
from sessioncart.logging import configure_logging
from sessioncart.models import (
    CartCondition,
    CartContent,
    CartInputItem,
    CartItem,
    CartUpdateOption,
    RelativeQuantity,
    ResolvedCondition,
)
from sessioncart.service import CartService
from sessioncart.storage import (
    CartStorage,
    LocalFileCartStorage,
    MemoryCartStorage,
    MongoCartStorage,
    RedisCartStorage,
)

__version__ = "1.0.0"
