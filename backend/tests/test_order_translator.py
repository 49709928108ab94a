"""Tests for WooCommerce to Clover order translation."""

from decimal import Decimal

import pytest

from clover_sync.schemas.order import AddOn, Address, Customer, LineItem, SourceOrder
from clover_sync.services.order_translator import (
    format_item_note,
    to_minor_units,
    translate,
)


def _order_with(sample_order: SourceOrder, **update) -> SourceOrder:
    return sample_order.model_copy(update=update)


class TestMinorUnits:
    """Tests for currency to cents conversion."""

    def test_truncates_instead_of_rounding(self):
        """19.999 becomes 1999 cents, not 2000."""
        assert to_minor_units(Decimal("19.999")) == 1999

    def test_round_currency_flag_rounds_half_up(self):
        assert to_minor_units(Decimal("19.999"), round_currency=True) == 2000
        assert to_minor_units(Decimal("0.125"), round_currency=True) == 13

    def test_truncates_toward_zero_for_negative_amounts(self):
        assert to_minor_units(Decimal("-19.999")) == -1999

    def test_exact_amounts(self):
        assert to_minor_units(Decimal("10")) == 1000
        assert to_minor_units(Decimal("0.29")) == 29
        assert to_minor_units(Decimal("0")) == 0


class TestItemNote:
    """Tests for line item note formatting."""

    def test_attributes_then_add_ons(self):
        note = format_item_note(
            {"Size": "large", "Color": "blue"},
            [AddOn(name="gift_wrap", value="Yes")],
        )
        assert note == "Size: large, Color: blue, gift_wrap: Yes"

    def test_empty_when_nothing_selected(self):
        assert format_item_note({}, []) == ""


class TestTranslate:
    """Tests for translate()."""

    def test_fixed_order_fields(self, sample_order):
        payload = translate(sample_order)
        assert payload["state"] == "open"
        assert payload["title"] == "WC Order #1001"
        assert payload["taxRemoved"] is False
        assert payload["manualTransaction"] is True
        assert payload["groupLineItems"] is False

    def test_note_passed_through(self, sample_order):
        payload = translate(sample_order, "Shipping: Standard")
        assert payload["note"] == "Shipping: Standard"

    def test_line_items_keep_count_and_order(self, sample_order):
        elements = translate(sample_order)["lineItems"]["elements"]
        assert len(elements) == len(sample_order.line_items)
        assert [e["name"] for e in elements] == ["Latte", "Croissant"]

    def test_line_item_fields(self, sample_order):
        latte, croissant = translate(sample_order)["lineItems"]["elements"]
        assert latte == {
            "name": "Latte",
            "price": 450,
            "unitQty": 2,
            "note": "Size: large, Milk: oat, extra_shot: yes",
        }
        assert croissant == {"name": "Croissant", "price": 350, "unitQty": 1, "note": ""}

    def test_average_unit_price(self, sample_order):
        """A 30.00 line for 3 units is sent as 10.00 per unit."""
        item = LineItem.from_total(name="Mug", item_total=Decimal("30.00"), quantity=3)
        order = _order_with(sample_order, line_items=[item])
        element = translate(order)["lineItems"]["elements"][0]
        assert element["price"] == 1000
        assert element["unitQty"] == 3

    def test_average_unit_price_truncates(self, sample_order):
        item = LineItem.from_total(name="Bagel", item_total=Decimal("10.00"), quantity=3)
        order = _order_with(sample_order, line_items=[item])
        assert translate(order)["lineItems"]["elements"][0]["price"] == 333

    def test_round_currency_applies_to_line_items(self, sample_order):
        item = LineItem.from_total(name="Bagel", item_total=Decimal("20.00"), quantity=3)
        order = _order_with(sample_order, line_items=[item])
        assert translate(order, round_currency=True)["lineItems"]["elements"][0]["price"] == 667

    def test_customer_info_with_address(self, sample_order):
        info = translate(sample_order)["customerInfo"]
        assert info == {
            "firstName": "Jane",
            "lastName": "Doe",
            "phoneNumber": "555-0100",
            "emailAddress": "jane@example.com",
            "marketingAllowed": False,
            "address": {
                "address1": "1 Main St",
                "address2": "Apt 2",
                "city": "Springfield",
                "state": "IL",
                "zip": "62701",
                "country": "US",
            },
        }

    def test_customer_info_omitted_without_name(self, sample_order):
        order = _order_with(
            sample_order,
            customer=Customer(first_name="", last_name="", email="x@example.com",
                              address=Address(line1="1 Main St")),
        )
        assert "customerInfo" not in translate(order)

    def test_address_omitted_without_line1(self, sample_order):
        order = _order_with(
            sample_order,
            customer=Customer(first_name="Jane", last_name="", address=Address(line1="", city="Springfield")),
        )
        payload = translate(order)
        assert "customerInfo" in payload
        assert "address" not in payload["customerInfo"]

    def test_last_name_alone_is_enough(self, sample_order):
        order = _order_with(sample_order, customer=Customer(last_name="Doe"))
        assert translate(order)["customerInfo"]["lastName"] == "Doe"

    def test_attributes_follow_metadata_order(self, sample_order):
        attributes = translate(sample_order)["attributes"]
        assert attributes == [
            {"name": "woocommerce_order_id", "value": "1001"},
            {"name": "order_number", "value": "1001"},
            {"name": "payment_method", "value": "Credit Card"},
            {"name": "shipping_method", "value": "Local pickup"},
            {"name": "order_date", "value": "2024-01-15 12:30:00"},
        ]

    def test_translate_does_not_mutate_order(self, sample_order):
        before = sample_order.model_dump()
        translate(sample_order, "note")
        assert sample_order.model_dump() == before

    @pytest.mark.parametrize("quantity", [0, -2])
    def test_quantity_clamped_to_one(self, quantity):
        item = LineItem.from_total(name="Tea", item_total=Decimal("4.00"), quantity=quantity)
        assert item.quantity == 1
        assert item.unit_price == Decimal("4.00")
