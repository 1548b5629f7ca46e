"""
Compute engine: derives subtotal and total from items and conditions

Conditions are applied in a fixed order (item targets, then subtotal, then
total). Percentage conditions are always taken against the value the target
had before any condition of that target ran, so they add up instead of
compounding.
"""
import math
from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union

import structlog

from sessioncart.exceptions import ParseError, TargetNotFoundError
from sessioncart.models import (
    CartCondition,
    CartContent,
    CartItem,
    ResolvedCondition,
    SUBTOTAL,
    TOTAL,
)


def default_item_value(item: CartItem, content: CartContent) -> float:
    """Value of a line: quantity times unit price"""
    return item.quantity * item.price


def default_condition_value(condition: ResolvedCondition, content: CartContent) -> float:
    """Effective change of a condition: its parsed value"""
    return condition.value


@dataclass
class ComputeHooks:
    """
    Extension points used while computing a cart

    item: returns the value of one line (e.g. graduated pricing)
    condition: returns the change a resolved condition applies (e.g. capped vouchers)
    """
    item: Callable[[CartItem, CartContent], float] = default_item_value
    condition: Callable[[ResolvedCondition, CartContent], float] = default_condition_value


def parse_condition_value(value: Union[int, float, str]) -> Tuple[bool, float]:
    """
    Parse a condition value into (is_percentage, change)

    "10%" gives (True, 0.1), "-10" gives (False, -10.0), 5 gives (False, 5).

    Raises:
        ParseError: If the value is not a finite number or percentage literal
    """
    if isinstance(value, bool):
        raise ParseError(value)
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ParseError(value)
        return False, value
    if not isinstance(value, str):
        raise ParseError(value)

    text = value.strip()
    is_percentage = text.endswith("%")
    if is_percentage:
        text = text[:-1].strip()
    try:
        number = float(text)
    except ValueError:
        raise ParseError(value) from None
    if not math.isfinite(number):
        raise ParseError(value)
    return is_percentage, (number / 100 if is_percentage else number)


def apply_change(initial: float, current: float, is_percentage: bool, change: float) -> float:
    """Apply a change to a running value; percentages are taken off the frozen baseline"""
    if is_percentage:
        return current + initial * change
    return current + change


def _target_rank(target: str) -> int:
    if target == TOTAL:
        return 2
    if target == SUBTOTAL:
        return 1
    return 0


def condition_sort_key(condition: CartCondition) -> Tuple[int, float, str]:
    """Sort key: item targets first, then subtotal, then total; by order, then target"""
    return (
        _target_rank(condition.target),
        condition.order if condition.order is not None else 0,
        condition.target,
    )


def sort_conditions(conditions: List[CartCondition]) -> List[CartCondition]:
    """Conditions in application order; ties keep insertion order"""
    return sorted(conditions, key=condition_sort_key)


class ComputeEngine:
    """Turns a cart snapshot into one with consistent subtotal and total"""

    def __init__(self, hooks: ComputeHooks = None):
        self.hooks = hooks or ComputeHooks()
        self.logger = structlog.get_logger().bind(component="compute_engine")

    def compute(self, content: CartContent) -> CartContent:
        """
        Compute subtotal and total for a cart

        Args:
            content: Cart snapshot; it is not modified

        Returns:
            A copy of the snapshot with subtotal and total set

        Raises:
            ParseError: If a condition value cannot be parsed
            TargetNotFoundError: If a condition targets an item not in the cart
        """
        result = content.model_copy(deep=True)
        items_by_id: Dict[str, CartItem] = {item.item_id: item for item in result.items}

        # (price, quantity) per line: frozen baseline and working values
        initial: Dict[str, Tuple[float, int]] = {
            item_id: (item.price, item.quantity) for item_id, item in items_by_id.items()
        }
        current: Dict[str, List[float]] = {
            item_id: [item.price, item.quantity] for item_id, item in items_by_id.items()
        }

        subtotal = sum(self.hooks.item(item, result) for item in result.items)
        total = subtotal
        initial_subtotal = subtotal
        initial_total = total

        subtotal_synced = False
        seen_subtotal = False
        seen_total = False

        for condition in sort_conditions(result.conditions):
            name, target, value = condition.name, condition.target, condition.value
            is_percentage, change = parse_condition_value(value)

            item = None
            if target not in (SUBTOTAL, TOTAL):
                if target not in current:
                    raise TargetNotFoundError(target, name)
                item = self._working_item(items_by_id[target], current[target])

            change = self.hooks.condition(
                ResolvedCondition(
                    name=name,
                    value=change,
                    is_percentage=is_percentage,
                    item=item,
                ),
                result,
            )

            if target == SUBTOTAL:
                if not seen_subtotal:
                    seen_subtotal = True
                    subtotal = self._sum_current(items_by_id, current, result)
                    subtotal_synced = True
                    initial_subtotal = subtotal
                subtotal = apply_change(initial_subtotal, subtotal, is_percentage, change)
            elif target == TOTAL:
                if not seen_total:
                    seen_total = True
                    if not subtotal_synced:
                        subtotal = self._sum_current(items_by_id, current, result)
                        subtotal_synced = True
                    total = subtotal
                    initial_total = total
                total = apply_change(initial_total, total, is_percentage, change)
            else:
                line = current[target]
                line[0] = apply_change(initial[target][0], line[0], is_percentage, change)

        if not seen_total:
            if not subtotal_synced:
                subtotal = self._sum_current(items_by_id, current, result)
            total = subtotal

        result.subtotal = self._sum_current(items_by_id, current, result)
        result.total = total

        self.logger.debug(
            "Cart computed",
            items=len(result.items),
            conditions=len(result.conditions),
            subtotal=result.subtotal,
            total=result.total,
        )
        return result

    @staticmethod
    def _working_item(item: CartItem, line: List[float]) -> CartItem:
        return item.model_copy(update={"price": line[0]})

    def _sum_current(self, items_by_id, current, content) -> float:
        return sum(
            self.hooks.item(self._working_item(item, current[item_id]), content)
            for item_id, item in items_by_id.items()
        )


def compute(content: CartContent, hooks: ComputeHooks = None) -> CartContent:
    """Compute subtotal and total for a cart snapshot with the given hooks"""
    return ComputeEngine(hooks).compute(content)
