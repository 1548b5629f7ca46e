"""
Business logic for cart operations

Every mutation reads the session's snapshot, changes it, runs it through the
compute engine and writes the result, so stored subtotal and total are always
consistent with items and conditions.
"""
import copy
from typing import Any, Dict, List, Optional, Type, Union

import structlog
from pydantic import ValidationError

from sessioncart.compute import ComputeEngine, ComputeHooks
from sessioncart.config import Config, get_config
from sessioncart.exceptions import CartError, OperationFailed
from sessioncart.loader import DataLoader
from sessioncart.models import (
    CartCondition,
    CartContent,
    CartInputItem,
    CartItem,
    CartUpdateOption,
    RelativeQuantity,
)
from sessioncart.storage import CartStorage
from sessioncart.utils import MISSING, get_path, parse_quantity, round_price, set_path


class CartService:
    """Service layer for cart business logic"""

    def __init__(
        self,
        session: str,
        config: Optional[Config] = None,
        hooks: Optional[ComputeHooks] = None,
        loader: Optional[DataLoader] = None,
    ):
        self.config = config or get_config()
        self._session = session
        self.loader = loader or DataLoader(session, self.config)
        self.engine = ComputeEngine(hooks)
        self.logger = structlog.get_logger().bind(component="cart_service")

    # Session and storage wiring

    def session(self, session: Optional[str] = None):
        """Get the session key, or switch to another one (chainable)"""
        if session is None:
            return self._session
        self.loader.key(session)
        self._session = session
        return self

    def driver(self, name: str) -> "CartService":
        """Set current working storage (chainable)"""
        self.loader.driver(name)
        return self

    def storage(self, name: Optional[str] = None) -> CartStorage:
        return self.loader.storage(name)

    def storages(self) -> Dict[str, CartStorage]:
        return self.loader.storages()

    def drivers(self) -> Dict[str, Type[CartStorage]]:
        return self.loader.drivers()

    def register_driver(self, name: str, storage: Type[CartStorage]) -> None:
        self.loader.register_driver(name, storage)

    def add_storage(self, name: str, config: Any) -> None:
        self.loader.add_storage(name, config)

    def flush(self) -> None:
        """Write pending data to storage now"""
        self.loader.flush()

    # Read/write cycle

    def _read(self) -> CartContent:
        return CartContent.from_dict(self.loader.get())

    def _write(self, content: CartContent) -> CartContent:
        computed = self.engine.compute(content)
        self.loader.set(computed.to_dict())
        return computed

    # Items

    def add(
        self, product: Union[dict, CartInputItem, List[Union[dict, CartInputItem]]]
    ) -> Union[CartItem, List[CartItem]]:
        """
        Add one or many items. An item equal to an existing line (same id,
        price and options) increments that line's quantity instead.

        Args:
            product: Candidate item, or a list of them

        Returns:
            The added/merged item, or a list when a list was given

        Raises:
            OperationFailed: If a candidate has no valid price or quantity
        """
        single = not isinstance(product, (list, tuple))
        products = [product] if single else list(product)

        try:
            content = self._read()
            added: List[str] = []

            for raw in products:
                candidate = self._candidate(raw)
                try:
                    price = round_price(candidate.price)
                except (TypeError, ValueError):
                    raise OperationFailed.add_to_cart(f"invalid price {candidate.price!r}") from None
                try:
                    quantity = 1 if candidate.quantity is None else parse_quantity(candidate.quantity)
                except (TypeError, ValueError):
                    raise OperationFailed.add_to_cart(f"invalid quantity {candidate.quantity!r}") from None

                existing = next(
                    (i for i in content.items if i.same_product(candidate.id, price, candidate.options)),
                    None,
                )
                if existing is not None:
                    self._apply_update(
                        existing,
                        CartUpdateOption(quantity=RelativeQuantity(relative=True, value=quantity)),
                    )
                    item = existing
                else:
                    item = CartItem(
                        **candidate.extra_fields(),
                        item_id=self._next_item_id(content, candidate.item_id),
                        id=candidate.id,
                        name=candidate.name,
                        price=price,
                        quantity=quantity,
                        options=candidate.options,
                    )
                    content.items.append(item)

                content.conditions.extend(candidate.conditions)
                added.append(item.item_id)

            computed = self._write(content)

        except CartError as e:
            self.logger.warning("Invalid add item request", session=self._session, error=str(e))
            raise
        except Exception as e:
            self.logger.error("Error adding item to cart", session=self._session, error=str(e))
            raise

        items = [computed.get_item(item_id) for item_id in added]
        self.logger.info("Items added", session=self._session, item_ids=added)
        return items[0] if single else items

    def update(self, item_id: Union[str, int], options: Union[dict, CartUpdateOption]) -> CartItem:
        """
        Update a cart item

        Args:
            item_id: Line identifier
            options: name/price/options overwrite when given; quantity is a
                number (replaces) or {"relative": bool, "value": ...}

        Returns:
            Updated item

        Raises:
            OperationFailed: If the item does not exist or a value is invalid
        """
        item_id = str(item_id)
        try:
            if isinstance(options, dict):
                options = CartUpdateOption.model_validate(options)

            content = self._read()
            item = content.get_item(item_id)
            if item is None:
                raise OperationFailed.cart_update(f"item {item_id} not found")

            self._apply_update(item, options)
            computed = self._write(content)

        except ValidationError as e:
            self.logger.warning("Invalid update request", session=self._session, item_id=item_id, error=str(e))
            raise OperationFailed.cart_update(str(e)) from e
        except CartError as e:
            self.logger.warning("Invalid update request", session=self._session, item_id=item_id, error=str(e))
            raise
        except Exception as e:
            self.logger.error("Error updating cart item", session=self._session, item_id=item_id, error=str(e))
            raise

        self.logger.info("Item updated", session=self._session, item_id=item_id)
        return computed.get_item(item_id)

    def get(self, item_id: Union[str, int]) -> CartItem:
        """Get cart item"""
        item = self._read().get_item(str(item_id))
        if item is None:
            raise OperationFailed.get_item(f"item {item_id} not found")
        return item

    def remove(self, item_id: Union[str, int, List[Union[str, int]]]) -> CartContent:
        """
        Remove one or many items. Conditions targeting a removed item go with it.

        Returns:
            Refreshed cart content
        """
        ids = item_id if isinstance(item_id, (list, tuple)) else [item_id]
        ids = {str(i) for i in ids}
        try:
            content = self._read()
            before = len(content.items)
            content.items = [i for i in content.items if i.item_id not in ids]
            content.conditions = [c for c in content.conditions if c.target not in ids]
            computed = self._write(content)
        except Exception as e:
            self.logger.error("Error removing item from cart", session=self._session, error=str(e))
            raise

        self.logger.info(
            "Items removed",
            session=self._session,
            item_ids=sorted(ids),
            removed=before - len(computed.items),
        )
        return computed

    def items(self) -> List[CartItem]:
        """List cart items"""
        return self._read().items

    def count(self) -> int:
        """Number of lines in the cart"""
        return len(self.items())

    def empty(self) -> bool:
        """Check if cart is empty"""
        return not self.items()

    def clear(self) -> CartContent:
        """Remove every item; subtotal/total conditions and session data are kept"""
        try:
            content = self._read()
            content.items = []
            content.conditions = [c for c in content.conditions if not c.targets_item()]
            computed = self._write(content)
        except Exception as e:
            self.logger.error("Error clearing cart", session=self._session, error=str(e))
            raise
        self.logger.info("Cart cleared", session=self._session)
        return computed

    # Conditions

    def apply(
        self, condition: Union[dict, CartCondition, List[Union[dict, CartCondition]]]
    ) -> Union[CartCondition, List[CartCondition]]:
        """
        Apply one or many conditions. A condition whose name already exists
        replaces the old one in place.

        Returns:
            The stored condition, or a list when a list was given
        """
        single = not isinstance(condition, (list, tuple))
        incoming = [condition] if single else list(condition)

        try:
            conditions = [
                c if isinstance(c, CartCondition) else CartCondition.model_validate(c)
                for c in incoming
            ]
            content = self._read()
            for new in conditions:
                for index, old in enumerate(content.conditions):
                    if old.name == new.name:
                        content.conditions[index] = new
                        break
                else:
                    content.conditions.append(new)
            computed = self._write(content)

        except ValidationError as e:
            self.logger.warning("Invalid condition", session=self._session, error=str(e))
            raise OperationFailed.apply_condition(str(e)) from e
        except CartError as e:
            self.logger.warning("Condition rejected", session=self._session, error=str(e))
            raise
        except Exception as e:
            self.logger.error("Error applying condition", session=self._session, error=str(e))
            raise

        names = [c.name for c in conditions]
        self.logger.info("Conditions applied", session=self._session, conditions=names)
        applied = [computed.get_condition(name) for name in names]
        return applied[0] if single else applied

    def conditions(self) -> List[CartCondition]:
        """Get all cart conditions"""
        return self._read().conditions

    def condition(self, name: str) -> CartCondition:
        """Retrieve a cart condition"""
        found = self._read().get_condition(name)
        if found is None:
            raise OperationFailed.condition(f"condition {name} not found")
        return found

    def remove_condition(self, name: str) -> None:
        """Remove a cart condition"""
        try:
            content = self._read()
            if content.get_condition(name) is None:
                raise OperationFailed.condition(f"condition {name} not found")
            content.conditions = [c for c in content.conditions if c.name != name]
            self._write(content)
        except CartError as e:
            self.logger.warning("Condition not removed", session=self._session, condition=name, error=str(e))
            raise
        except Exception as e:
            self.logger.error("Error removing condition", session=self._session, condition=name, error=str(e))
            raise
        self.logger.info("Condition removed", session=self._session, condition=name)

    def clear_conditions(self) -> None:
        """Clear cart conditions"""
        try:
            content = self._read()
            content.conditions = []
            self._write(content)
        except Exception as e:
            self.logger.error("Error clearing conditions", session=self._session, error=str(e))
            raise
        self.logger.info("Conditions cleared", session=self._session)

    # Totals and content

    def content(self) -> CartContent:
        """Get cart contents"""
        return self._read()

    def subtotal(self) -> float:
        """Get cart subtotal"""
        return self._read().subtotal

    def total(self) -> float:
        """Get cart total"""
        return self._read().total

    def data(self, key: Any = None, value: Any = MISSING) -> Any:
        """
        Get or put miscellaneous session data

        data() returns the whole bag, data("customer.email") one value,
        data("customer.email", "x") sets it and data({...}) replaces the bag.
        """
        content = self._read()

        if isinstance(key, dict) and value is MISSING:
            content.data = copy.deepcopy(key)
            return self._write(content).data

        if value is MISSING:
            return get_path(content.data, key)

        set_path(content.data, key, value)
        self._write(content)
        return value

    # Internals

    @staticmethod
    def _candidate(raw: Union[dict, CartInputItem]) -> CartInputItem:
        if isinstance(raw, CartInputItem):
            return raw
        try:
            return CartInputItem.model_validate(raw)
        except ValidationError as e:
            raise OperationFailed.add_to_cart(str(e)) from e

    @staticmethod
    def _next_item_id(content: CartContent, requested: Optional[str]) -> str:
        taken = {i.item_id for i in content.items}
        if requested:
            if requested in taken:
                raise OperationFailed.add_to_cart(f"item_id {requested} already exists")
            return requested
        sequence = len(content.items) + 1
        while str(sequence) in taken:
            sequence += 1
        return str(sequence)

    @staticmethod
    def _apply_update(item: CartItem, options: CartUpdateOption) -> None:
        if options.name:
            item.name = options.name
        if options.price:
            try:
                item.price = round_price(options.price)
            except (TypeError, ValueError):
                raise OperationFailed.cart_update(f"invalid price {options.price!r}") from None
        if options.options:
            item.options = options.options

        quantity = options.quantity
        if isinstance(quantity, RelativeQuantity):
            try:
                value = parse_quantity(quantity.value)
            except (TypeError, ValueError):
                raise OperationFailed.cart_update(f"invalid quantity {quantity.value!r}") from None
            item.quantity = item.quantity + value if quantity.relative else value
        elif quantity is not None:
            item.quantity = int(quantity)
