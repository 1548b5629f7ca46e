"""
Unit tests for cart service business logic
"""
import pytest
from unittest.mock import Mock

from sessioncart.exceptions import OperationFailed, ParseError, TargetNotFoundError
from sessioncart.loader import DataLoader
from sessioncart.models import CartContent
from sessioncart.service import CartService


PRODUCT_1 = {"id": 1, "name": "Product 1", "price": 30}
RED = [{"type": "Colour", "value": "red"}]


class TestAddItems:
    """Test adding and merging items"""

    def test_add_to_cart(self, cart):
        item = cart.add(PRODUCT_1)

        assert cart.empty() is False
        assert item.item_id == "1"
        assert item.id == "1"
        assert item.quantity == 1

    def test_add_same_product_merges(self, cart):
        cart.add(PRODUCT_1)
        item = cart.add({**PRODUCT_1, "quantity": 3})

        assert cart.count() == 1
        assert item.quantity == 4

    def test_options_distinguish_items(self, cart):
        cart.add(PRODUCT_1)
        cart.add({**PRODUCT_1, "options": RED})
        assert cart.count() == 2

        again = cart.add({**PRODUCT_1, "options": RED})

        assert cart.count() == 2
        assert again.item_id == "2"
        assert again.quantity == 2

    def test_different_price_is_a_new_line(self, cart):
        cart.add(PRODUCT_1)
        cart.add({**PRODUCT_1, "price": 25})

        assert cart.count() == 2

    def test_quantity_accumulates_and_updates(self, cart):
        cart.add(PRODUCT_1)
        i1 = cart.add({**PRODUCT_1, "quantity": 3})
        i2 = cart.update(i1.item_id, {
            "name": "Product 1",
            "price": 30,
            "quantity": {"relative": True, "value": 1},
        })
        i3 = cart.add({"id": 2, "name": "Product 2", "price": 30, "quantity": 3})
        cart.remove(i3.item_id)

        assert i1.quantity == 4
        assert i2.quantity == 5
        assert cart.count() == 1

    def test_subtotal_and_total(self, cart):
        cart.add(PRODUCT_1)
        cart.add({**PRODUCT_1, "quantity": 3})

        assert cart.subtotal() == 120
        assert cart.total() == 120

    def test_price_rounded_to_two_decimals(self, cart):
        item = cart.add({"id": 5, "name": "Rounded", "price": "29.999"})
        half = cart.add({"id": 6, "name": "Half", "price": 0.125})

        assert item.price == 30.0
        assert half.price == 0.13

    def test_string_quantity(self, cart):
        item = cart.add({**PRODUCT_1, "quantity": "3"})

        assert item.quantity == 3

    def test_list_in_list_out(self, cart):
        items = cart.add([PRODUCT_1, {"id": 2, "name": "Product 2", "price": 10}])
        single = cart.add([{"id": 3, "name": "Product 3", "price": 5}])

        assert [i.item_id for i in items] == ["1", "2"]
        assert isinstance(single, list)
        assert single[0].item_id == "3"

    def test_custom_fields(self, cart):
        cart.add({"id": 1, "name": "Product 1", "price": 20})
        merged = cart.add({"id": 1, "name": "Product 1", "price": 20, "workspace": "Timbouc"})
        fresh = cart.add({"id": 100, "name": "Product 100", "price": 20, "workspace": "Timbouc"})

        assert getattr(merged, "workspace", None) != "Timbouc"
        assert fresh.workspace == "Timbouc"
        assert cart.get(fresh.item_id).workspace == "Timbouc"

    def test_client_item_id(self, cart):
        item = cart.add({**PRODUCT_1, "item_id": "line-a"})

        assert item.item_id == "line-a"
        assert cart.get("line-a").name == "Product 1"

    def test_duplicate_client_item_id(self, cart):
        cart.add({**PRODUCT_1, "item_id": "line-a"})

        with pytest.raises(OperationFailed):
            cart.add({"id": 2, "name": "Product 2", "price": 5, "item_id": "line-a"})

    def test_item_ids_stay_unique_after_removal(self, cart):
        cart.add([PRODUCT_1, {"id": 2, "name": "Product 2", "price": 10}])
        cart.remove("1")

        item = cart.add({"id": 3, "name": "Product 3", "price": 5})

        assert item.item_id == "3"
        assert sorted(i.item_id for i in cart.items()) == ["2", "3"]

    def test_add_with_conditions(self, cart):
        item = cart.add({
            **PRODUCT_1,
            "conditions": [{"name": "Shipping", "type": "shipping", "target": "total", "value": 5}],
        })

        assert item.price == 30
        assert cart.condition("Shipping").value == 5
        assert cart.total() == 35

    def test_add_without_price(self, cart):
        with pytest.raises(OperationFailed, match="Failed to add to cart"):
            cart.add({"id": 1, "name": "No price"})

        assert cart.empty() is True

    def test_null_options_mean_no_options(self, cart):
        cart.add(PRODUCT_1)

        item = cart.add({**PRODUCT_1, "options": None})

        assert item.options == []
        assert item.quantity == 2
        assert cart.count() == 1

    def test_add_with_invalid_price(self, cart):
        with pytest.raises(OperationFailed):
            cart.add({"id": 1, "name": "Bad price", "price": "free"})

    def test_add_with_invalid_quantity(self, cart):
        with pytest.raises(OperationFailed):
            cart.add({**PRODUCT_1, "quantity": "lots"})

    def test_add_without_id(self, cart):
        with pytest.raises(OperationFailed):
            cart.add({"name": "Anonymous", "price": 10})


class TestUpdateItems:
    """Test item updates"""

    def test_plain_quantity_replaces(self, cart):
        item = cart.add({**PRODUCT_1, "quantity": 3})

        updated = cart.update(item.item_id, {"quantity": 7})

        assert updated.quantity == 7
        assert cart.subtotal() == 210

    def test_non_relative_quantity_replaces(self, cart):
        item = cart.add({**PRODUCT_1, "quantity": 3})

        updated = cart.update(item.item_id, {"quantity": {"relative": False, "value": "2"}})

        assert updated.quantity == 2

    def test_relative_quantity_from_string(self, cart):
        item = cart.add({**PRODUCT_1, "quantity": 3})

        updated = cart.update(item.item_id, {"quantity": {"relative": True, "value": "-1"}})

        assert updated.quantity == 2

    def test_fields_overwrite(self, cart):
        item = cart.add(PRODUCT_1)

        updated = cart.update(item.item_id, {"name": "Renamed", "price": "12.346", "options": RED})

        assert updated.name == "Renamed"
        assert updated.price == 12.35
        assert updated.options == RED
        assert updated.quantity == 1
        assert cart.total() == 12.35

    def test_falsy_fields_untouched(self, cart):
        item = cart.add(PRODUCT_1)

        updated = cart.update(item.item_id, {"name": "", "price": 0})

        assert updated.name == "Product 1"
        assert updated.price == 30

    def test_update_missing_item(self, cart):
        with pytest.raises(OperationFailed, match="Failed to update cart"):
            cart.update("42", {"quantity": 1})

    def test_update_with_invalid_quantity(self, cart):
        item = cart.add(PRODUCT_1)

        with pytest.raises(OperationFailed):
            cart.update(item.item_id, {"quantity": {"relative": True, "value": "many"}})

        assert cart.get(item.item_id).quantity == 1

    def test_get_missing_item(self, cart):
        with pytest.raises(OperationFailed, match="Failed to get item"):
            cart.get("42")


class TestRemoveItems:
    """Test removing and clearing items"""

    def test_remove_item(self, cart):
        cart.add([PRODUCT_1, {"id": 2, "name": "Product 2", "price": 10}])

        content = cart.remove("1")

        assert isinstance(content, CartContent)
        assert [i.item_id for i in content.items] == ["2"]
        assert cart.count() == 1
        assert cart.total() == 10

    def test_remove_many(self, cart):
        cart.add([PRODUCT_1, {"id": 2, "name": "P2", "price": 10}, {"id": 3, "name": "P3", "price": 1}])

        cart.remove(["1", 3])

        assert [i.item_id for i in cart.items()] == ["2"]

    def test_remove_nonexistent_item(self, cart):
        cart.add(PRODUCT_1)

        content = cart.remove("999")

        assert len(content.items) == 1

    def test_remove_drops_item_conditions(self, cart):
        item = cart.add(PRODUCT_1)
        cart.apply({"name": "voucher", "type": "voucher", "target": item.item_id, "value": -5})
        cart.apply({"name": "shipping", "type": "shipping", "target": "total", "value": 5})

        cart.remove(item.item_id)

        assert [c.name for c in cart.conditions()] == ["shipping"]
        assert cart.total() == 5

    def test_clear(self, cart):
        item = cart.add(PRODUCT_1)
        cart.apply([
            {"name": "voucher", "type": "voucher", "target": item.item_id, "value": -5},
            {"name": "tax", "type": "tax", "target": "subtotal", "value": "10%"},
        ])
        cart.data("checkout_contact", "johndoe@example.com")

        content = cart.clear()

        assert content.items == []
        assert [c.name for c in content.conditions] == ["tax"]
        assert content.subtotal == 0
        assert content.total == 0
        assert cart.data("checkout_contact") == "johndoe@example.com"


class TestConditions:
    """Test applying and removing conditions"""

    def test_conditions_on_subtotal(self, cart):
        cart.add({"id": 1, "name": "Product 1", "price": 20})
        cart.apply([
            {"name": "+10% Tax", "type": "voucher", "target": "subtotal", "value": "+10%"},
            {"name": "+5% Tax 1", "type": "voucher", "target": "subtotal", "value": "+5%"},
            {"name": "-5% Tax 1", "type": "voucher", "target": "subtotal", "value": "-5%"},
        ])

        assert cart.subtotal() == pytest.approx(20)
        assert cart.total() == pytest.approx(22)

    def test_subtotal_and_total_against_conditions(self, cart):
        cart.add({"id": 1, "name": "Product 1", "price": 20})
        i1 = cart.add({"id": 2, "name": "Product 2", "price": 40, "quantity": 3})
        cart.apply({
            "name": f"Voucher 1 for item {i1.item_id}",
            "type": "voucher",
            "target": i1.item_id,
            "value": -10,
        })
        cart.apply({
            "name": f"Voucher 2 for item {i1.item_id}",
            "type": "voucher",
            "target": i1.item_id,
            "value": "-10%",
        })
        cart.apply({"name": "tax", "type": "tax", "target": "subtotal", "value": "10%"})
        cart.apply({"name": "use prepaid credit", "type": "discount", "target": "total", "value": "-15"})

        assert cart.subtotal() == pytest.approx(98)
        assert cart.total() == pytest.approx(92.8)

    def test_apply_replaces_by_name(self, cart):
        con1 = cart.apply({"name": "Shipping", "type": "shipping", "target": "total", "value": 10})
        con2 = cart.apply({"name": "Shipping", "type": "shipping", "target": "total", "value": 12, "order": 3})
        con3 = cart.condition("Shipping")

        assert con1.value == 10
        assert con2.value == 12
        assert con3.value == 12
        assert con3.order == 3
        assert len(cart.conditions()) == 1
        assert cart.total() == 12

    def test_replace_keeps_position(self, cart):
        cart.apply([
            {"name": "a", "type": "tax", "target": "total", "value": 1},
            {"name": "b", "type": "tax", "target": "total", "value": 2},
        ])

        cart.apply({"name": "a", "type": "tax", "target": "total", "value": 3})

        assert [c.name for c in cart.conditions()] == ["a", "b"]
        assert cart.conditions()[0].value == 3

    def test_stored_value_is_not_parsed(self, cart):
        cart.add(PRODUCT_1)
        cart.apply({"name": "tax", "type": "tax", "target": "subtotal", "value": "+10%"})

        assert cart.condition("tax").value == "+10%"

    def test_remove_condition(self, cart):
        cart.add(PRODUCT_1)
        cart.apply({"name": "Shipping", "type": "shipping", "target": "total", "value": 10})

        cart.remove_condition("Shipping")

        assert cart.conditions() == []
        assert cart.total() == 30

    def test_remove_missing_condition(self, cart):
        with pytest.raises(OperationFailed):
            cart.remove_condition("Nope")

    def test_get_missing_condition(self, cart):
        with pytest.raises(OperationFailed, match="Failed to get condition"):
            cart.condition("Nope")

    def test_clear_conditions(self, cart):
        cart.add(PRODUCT_1)
        cart.apply([
            {"name": "tax", "type": "tax", "target": "subtotal", "value": "10%"},
            {"name": "Shipping", "type": "shipping", "target": "total", "value": 10},
        ])

        cart.clear_conditions()

        assert cart.conditions() == []
        assert cart.total() == 30

    def test_malformed_value_is_not_stored(self, cart):
        cart.add(PRODUCT_1)

        with pytest.raises(ParseError):
            cart.apply({"name": "broken", "type": "tax", "target": "total", "value": "lots"})

        assert cart.conditions() == []
        assert cart.total() == 30

    def test_missing_target_is_not_stored(self, cart):
        cart.add(PRODUCT_1)

        with pytest.raises(TargetNotFoundError):
            cart.apply({"name": "ghost", "type": "voucher", "target": "99", "value": -1})

        assert cart.conditions() == []

    def test_invalid_condition_shape(self, cart):
        with pytest.raises(OperationFailed, match="Failed to apply condition"):
            cart.apply({"name": "odd", "type": "bribe", "target": "total", "value": 1})

    @pytest.mark.parametrize("value", [True, False])
    def test_boolean_value_rejected(self, cart, value):
        cart.add(PRODUCT_1)

        with pytest.raises(OperationFailed) as exc_info:
            cart.apply({"name": "flag", "type": "tax", "target": "subtotal", "value": value})

        assert str(exc_info.value).startswith("Failed to apply condition")
        assert cart.conditions() == []
        assert cart.total() == 30


class TestSessionData:
    """Test the miscellaneous data bag and session switching"""

    def test_get_put_data(self, cart):
        d1 = cart.data("checkout_contact", "johndoe@example.com")
        d2 = cart.data("checkout_contact")
        cart.data("customer.name", "John Doe")
        cart.data("customer.email", "johndoe@mail.com")

        assert d1 == "johndoe@example.com"
        assert d2 == "johndoe@example.com"
        assert cart.data("customer") == {"name": "John Doe", "email": "johndoe@mail.com"}
        assert cart.data("customer.email") == "johndoe@mail.com"
        assert cart.content().data["customer"]["name"] == "John Doe"

    def test_replace_data(self, cart):
        cart.data("stale", True)

        cart.data({"checkout_contact": "johndoe@example.com", "customer": {"name": "John Doe"}})

        data = cart.data()
        assert data == {"checkout_contact": "johndoe@example.com", "customer": {"name": "John Doe"}}

    def test_missing_data_key(self, cart):
        assert cart.data("nothing.here") is None

    def test_switch_session(self, cart):
        cart.add(PRODUCT_1)

        cart.session("user-2")
        assert cart.session() == "user-2"
        assert cart.empty() is True
        cart.add({"id": 9, "name": "Other", "price": 1})

        cart.session("user-1")
        assert [i.id for i in cart.items()] == ["1"]


class TestCartServiceWithMockLoader:
    """Test the read/compute/write cycle against a mocked loader"""

    @pytest.fixture
    def mock_loader(self):
        """Create mock data loader"""
        return Mock(spec=DataLoader)

    @pytest.fixture
    def cart_service(self, mock_loader, memory_config):
        """Create cart service with mock loader"""
        return CartService("user123", memory_config, loader=mock_loader)

    def test_empty_storage(self, cart_service, mock_loader):
        mock_loader.get.return_value = {}

        content = cart_service.content()

        assert content.items == []
        assert content.conditions == []
        assert content.subtotal == 0
        assert content.total == 0

    def test_add_writes_computed_content(self, cart_service, mock_loader):
        mock_loader.get.return_value = {
            "items": [
                {"item_id": "1", "id": "BOOK-001", "name": "Book 1", "price": 19.99, "quantity": 2, "options": []}
            ],
            "conditions": [
                {"name": "Shipping", "type": "shipping", "target": "total", "value": 5}
            ],
            "subtotal": 39.98,
            "total": 44.98,
        }

        item = cart_service.add({"id": "BOOK-002", "name": "Book 2", "price": 10})

        assert item.item_id == "2"
        mock_loader.set.assert_called_once()
        stored = mock_loader.set.call_args[0][0]
        assert stored["subtotal"] == pytest.approx(49.98)
        assert stored["total"] == pytest.approx(54.98)
        assert [i["item_id"] for i in stored["items"]] == ["1", "2"]

    def test_failed_compute_does_not_write(self, cart_service, mock_loader):
        mock_loader.get.return_value = {
            "items": [],
            "conditions": [],
            "subtotal": 0,
            "total": 0,
        }

        with pytest.raises(TargetNotFoundError):
            cart_service.apply({"name": "ghost", "type": "voucher", "target": "1", "value": -1})

        mock_loader.set.assert_not_called()

    def test_write_error_propagates(self, cart_service, mock_loader):
        mock_loader.get.return_value = {}
        mock_loader.set.side_effect = OSError("disk full")

        with pytest.raises(OSError, match="disk full"):
            cart_service.add(PRODUCT_1)

    @pytest.mark.parametrize("operation,args", [
        ("clear", ()),
        ("remove_condition", ("Shipping",)),
        ("clear_conditions", ()),
    ])
    def test_storage_failure_logged_and_raised(self, cart_service, mock_loader, operation, args):
        mock_loader.get.return_value = {
            "items": [],
            "conditions": [{"name": "Shipping", "type": "shipping", "target": "total", "value": 5}],
        }
        mock_loader.set.side_effect = OSError("disk full")
        cart_service.logger = Mock()

        with pytest.raises(OSError, match="disk full"):
            getattr(cart_service, operation)(*args)

        cart_service.logger.error.assert_called_once()
        cart_service.logger.info.assert_not_called()

    def test_missing_condition_logged_as_warning(self, cart_service, mock_loader):
        mock_loader.get.return_value = {}
        cart_service.logger = Mock()

        with pytest.raises(OperationFailed, match="Failed to get condition"):
            cart_service.remove_condition("ghost")

        cart_service.logger.warning.assert_called_once()
        cart_service.logger.error.assert_not_called()
        mock_loader.set.assert_not_called()

    def test_session_switch_goes_through_loader(self, cart_service, mock_loader):
        result = cart_service.session("user456")

        assert result is cart_service
        mock_loader.key.assert_called_once_with("user456")


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
