"""
Exceptions raised by the cart engine, the data loader and storage drivers
"""
from typing import Any, Optional


class CartError(Exception):
    """Base class for every cart error"""


class InvalidConfigError(CartError):
    """Storage wiring is missing or inconsistent"""

    @classmethod
    def missing_storage_name(cls) -> "InvalidConfigError":
        return cls("Make sure to define a default storage name inside config")

    @classmethod
    def missing_storage_config(cls, name: str) -> "InvalidConfigError":
        return cls(f"Make sure to define config for {name} storage")

    @classmethod
    def missing_storage_driver(cls, name: str) -> "InvalidConfigError":
        return cls(f"Make sure to define driver for {name} storage")

    @classmethod
    def duplicate_storage_name(cls, name: str) -> "InvalidConfigError":
        return cls(f"A storage named {name} is already defined")


class DriverNotSupportedError(CartError):
    """No storage driver is registered under the requested name"""

    def __init__(self, driver: str):
        super().__init__(f"Driver {driver} is not supported")
        self.driver = driver


class MethodNotSupportedError(CartError):
    """A storage driver does not implement the requested operation"""

    def __init__(self, method: str):
        super().__init__(f"Method {method} is not supported by this storage")
        self.method = method


class ParseError(CartError):
    """A condition value is neither a number nor a percentage literal"""

    def __init__(self, value: Any):
        super().__init__(f"Cannot parse condition value {value!r}")
        self.value = value


class TargetNotFoundError(CartError):
    """A condition targets an item_id that is not in the cart"""

    def __init__(self, target: str, condition: Optional[str] = None):
        message = f"Condition target item {target!r} not found"
        if condition:
            message = f"{message} (condition {condition!r})"
        super().__init__(message)
        self.target = target
        self.condition = condition


class OperationFailed(CartError):
    """A cart operation could not be carried out"""

    @classmethod
    def _build(cls, prefix: str, msg: Optional[str]) -> "OperationFailed":
        return cls(f"{prefix}: {msg}" if msg else prefix)

    @classmethod
    def add_to_cart(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to add to cart", msg)

    @classmethod
    def cart_update(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to update cart", msg)

    @classmethod
    def compute(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to compute for cart", msg)

    @classmethod
    def apply_condition(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to apply condition", msg)

    @classmethod
    def condition(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to get condition", msg)

    @classmethod
    def get_item(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to get item", msg)

    @classmethod
    def parse_string(cls, msg: Optional[str] = None) -> "OperationFailed":
        return cls._build("Failed to parse string", msg)
