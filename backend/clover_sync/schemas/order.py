"""Source order schemas.

Read-only view of a WooCommerce order as the sync needs it. Orders arrive as
WooCommerce REST/webhook documents and are parsed with
``SourceOrder.from_woocommerce``.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

VARIATION_META_PREFIXES = ("attribute_pa_", "pa_")
ADDON_META_PREFIXES = ("yith_wapo_", "_ywapo_")
ORDER_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _to_decimal(value: Any) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def attribute_label(meta_key: str) -> str:
    """Turn ``attribute_pa_shirt-size`` into ``Shirt Size``."""
    name = meta_key
    if name.startswith("attribute_"):
        name = name[len("attribute_"):]
    if name.startswith("pa_"):
        name = name[len("pa_"):]
    return name.replace("-", " ").replace("_", " ").strip().title()


class Address(BaseModel):
    model_config = ConfigDict(frozen=True)

    line1: str = ""
    line2: str = ""
    city: str = ""
    state: str = ""
    zip: str = ""
    country: str = ""


class Customer(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str = ""
    last_name: str = ""
    phone: str = ""
    email: str = ""
    address: Address = Field(default_factory=Address)


class AddOn(BaseModel):
    """Product add-on selected for a line item."""
    model_config = ConfigDict(frozen=True)

    name: str
    value: str = ""
    price: Decimal = Decimal("0")


class LineItem(BaseModel):
    """Order line item.

    ``unit_price`` is the average price per unit (line total divided by
    quantity), not the catalog price.
    """
    model_config = ConfigDict(frozen=True)

    name: str
    unit_price: Decimal
    quantity: int = Field(default=1, ge=1)
    variation_attributes: Dict[str, str] = Field(default_factory=dict)
    add_ons: List[AddOn] = Field(default_factory=list)

    @classmethod
    def from_total(
        cls,
        name: str,
        item_total: Decimal,
        quantity: int,
        variation_attributes: Optional[Dict[str, str]] = None,
        add_ons: Optional[List[AddOn]] = None,
    ) -> "LineItem":
        qty = max(1, int(quantity or 0))
        return cls(
            name=name,
            unit_price=_to_decimal(item_total) / qty,
            quantity=qty,
            variation_attributes=variation_attributes or {},
            add_ons=add_ons or [],
        )


class SourceOrder(BaseModel):
    """Order supplied by the commerce platform."""
    model_config = ConfigDict(frozen=True)

    id: str
    order_number: str
    customer: Customer = Field(default_factory=Customer)
    line_items: List[LineItem] = Field(default_factory=list)
    total: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    payment_method_title: str = ""
    shipping_method: str = ""
    customer_note: str = ""
    created_at: Optional[datetime] = None

    @property
    def has_line_items(self) -> bool:
        return len(self.line_items) > 0

    def metadata(self) -> "OrderedDict[str, str]":
        """Order metadata sent to Clover as order attributes, in this order."""
        return OrderedDict(
            [
                ("woocommerce_order_id", self.id),
                ("order_number", self.order_number),
                ("payment_method", self.payment_method_title),
                ("shipping_method", self.shipping_method),
                (
                    "order_date",
                    self.created_at.strftime(ORDER_DATE_FORMAT) if self.created_at else "",
                ),
            ]
        )

    # ------------------------------------------------------------------
    # WooCommerce parsing
    # ------------------------------------------------------------------

    @classmethod
    def from_woocommerce(cls, payload: Dict[str, Any]) -> "SourceOrder":
        """Build a SourceOrder from a WooCommerce order document."""
        billing = payload.get("billing") or {}
        customer = Customer(
            first_name=_to_str(billing.get("first_name")),
            last_name=_to_str(billing.get("last_name")),
            phone=_to_str(billing.get("phone")),
            email=_to_str(billing.get("email")),
            address=Address(
                line1=_to_str(billing.get("address_1")),
                line2=_to_str(billing.get("address_2")),
                city=_to_str(billing.get("city")),
                state=_to_str(billing.get("state")),
                zip=_to_str(billing.get("postcode")),
                country=_to_str(billing.get("country")),
            ),
        )

        line_items = []
        for item in payload.get("line_items") or []:
            # Product deleted since the order was placed
            if not item.get("product_id"):
                continue
            meta = item.get("meta_data") or []
            line_items.append(
                LineItem.from_total(
                    name=_to_str(item.get("name")),
                    item_total=_to_decimal(item.get("total")),
                    quantity=item.get("quantity") or 1,
                    variation_attributes=_variation_attributes(item, meta),
                    add_ons=_yith_add_ons(meta),
                )
            )

        shipping_titles = [
            _to_str(line.get("method_title"))
            for line in payload.get("shipping_lines") or []
            if line.get("method_title")
        ]

        created_at = None
        if payload.get("date_created"):
            try:
                created_at = datetime.fromisoformat(str(payload["date_created"]))
            except ValueError:
                logger.warning(
                    f"Unparseable date_created {payload['date_created']!r} on order {payload.get('id')}"
                )

        return cls(
            id=_to_str(payload.get("id")),
            order_number=_to_str(payload.get("number") or payload.get("id")),
            customer=customer,
            line_items=line_items,
            total=_to_decimal(payload.get("total")),
            tax_amount=_to_decimal(payload.get("total_tax")),
            payment_method_title=_to_str(payload.get("payment_method_title")),
            shipping_method=", ".join(shipping_titles),
            customer_note=_to_str(payload.get("customer_note")),
            created_at=created_at,
        )


def _variation_attributes(item: Dict[str, Any], meta: List[Dict[str, Any]]) -> Dict[str, str]:
    if not item.get("variation_id"):
        return {}
    attributes: Dict[str, str] = {}
    for entry in meta:
        key = _to_str(entry.get("key"))
        if key.startswith(VARIATION_META_PREFIXES):
            label = entry.get("display_key") or attribute_label(key)
            attributes[label] = _to_str(entry.get("value"))
    return attributes


def _yith_add_ons(meta: List[Dict[str, Any]]) -> List[AddOn]:
    add_ons = []
    for entry in meta:
        key = _to_str(entry.get("key"))
        if key.startswith(ADDON_META_PREFIXES):
            name = key
            for prefix in ADDON_META_PREFIXES:
                name = name.replace(prefix, "")
            # YITH does not expose a per-add-on price on the order item
            add_ons.append(AddOn(name=name, value=_to_str(entry.get("value"))))
    return add_ons
