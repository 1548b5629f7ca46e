"""
Helpers for dotted-path access into nested dictionaries and price/quantity parsing
"""
import math
from typing import Any, Dict, Optional


MISSING = object()


def get_path(data: Dict[str, Any], path: Optional[str], default: Any = None) -> Any:
    """Get a nested value by dotted path ("customer.email"); no path returns data"""
    if not path:
        return data
    node: Any = data
    for part in path.split("."):
        if not isinstance(node, dict) or part not in node:
            return default
        node = node[part]
    return node


def has_path(data: Dict[str, Any], path: str) -> bool:
    """Check whether a dotted path exists"""
    return get_path(data, path, MISSING) is not MISSING


def set_path(data: Dict[str, Any], path: str, value: Any) -> None:
    """Set a nested value by dotted path, creating intermediate dictionaries"""
    parts = path.split(".")
    node = data
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def round_price(value: Any) -> float:
    """
    Parse a price and round it to 2 decimals, halves rounding up

    Raises:
        ValueError: If the value is missing or not a finite number
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid price {value!r}")
    number = float(value.strip() if isinstance(value, str) else value)
    if not math.isfinite(number):
        raise ValueError(f"Invalid price {value!r}")
    return math.floor(number * 100 + 0.5) / 100


def parse_quantity(value: Any) -> int:
    """
    Parse a quantity given as a number or numeric string

    Raises:
        ValueError: If the value is not numeric
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"Invalid quantity {value!r}")
    if isinstance(value, int):
        return value
    number = float(value.strip() if isinstance(value, str) else value)
    if not math.isfinite(number):
        raise ValueError(f"Invalid quantity {value!r}")
    return int(number)
