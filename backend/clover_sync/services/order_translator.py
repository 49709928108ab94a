"""WooCommerce order to Clover order translation.

Pure functions. The output dict is the body of
``POST /v3/merchants/{mId}/orders`` and mirrors the Clover order schema field
for field.
"""

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Sequence

from clover_sync.schemas.order import AddOn, Customer, LineItem, SourceOrder

ORDER_TITLE_PREFIX = "WC Order #"


def to_minor_units(amount: Decimal, round_currency: bool = False) -> int:
    """Convert a currency amount to cents.

    Truncates toward zero unless ``round_currency`` is set; existing Clover
    reconciliation was built against the truncated values.
    """
    rounding = ROUND_HALF_UP if round_currency else ROUND_DOWN
    return int((Decimal(amount) * 100).to_integral_value(rounding=rounding))


def format_item_note(variation_attributes: Mapping[str, str], add_ons: Sequence[AddOn]) -> str:
    notes = [f"{name}: {value}" for name, value in variation_attributes.items()]
    notes.extend(f"{addon.name}: {addon.value}" for addon in add_ons)
    return ", ".join(notes)


def translate_line_item(item: LineItem, round_currency: bool = False) -> Dict[str, Any]:
    return {
        "name": item.name,
        "price": to_minor_units(item.unit_price, round_currency),
        "unitQty": item.quantity,
        "note": format_item_note(item.variation_attributes, item.add_ons),
    }


def translate_customer(customer: Customer) -> Optional[Dict[str, Any]]:
    """Clover customerInfo block, or None when the order has no customer name."""
    if not customer.first_name and not customer.last_name:
        return None

    info: Dict[str, Any] = {
        "firstName": customer.first_name,
        "lastName": customer.last_name,
        "phoneNumber": customer.phone,
        "emailAddress": customer.email,
        "marketingAllowed": False,
    }
    address = customer.address
    if address.line1:
        info["address"] = {
            "address1": address.line1,
            "address2": address.line2,
            "city": address.city,
            "state": address.state,
            "zip": address.zip,
            "country": address.country,
        }
    return info


def translate_attributes(metadata: Mapping[str, Any]) -> List[Dict[str, Any]]:
    return [{"name": name, "value": value} for name, value in metadata.items()]


def translate(order: SourceOrder, note: str = "", *, round_currency: bool = False) -> Dict[str, Any]:
    """Map a SourceOrder onto a Clover order payload.

    Never fails: optional fields that are empty are left out of the payload.
    """
    payload: Dict[str, Any] = {
        "state": "open",
        "title": f"{ORDER_TITLE_PREFIX}{order.order_number}",
        "note": note,
        "taxRemoved": False,
        "manualTransaction": True,
        "groupLineItems": False,
        "lineItems": {
            "elements": [
                translate_line_item(item, round_currency) for item in order.line_items
            ],
        },
    }

    customer_info = translate_customer(order.customer)
    if customer_info is not None:
        payload["customerInfo"] = customer_info

    payload["attributes"] = translate_attributes(order.metadata())
    return payload
