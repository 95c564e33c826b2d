"""
Order totals and line-item arithmetic.

VAT is a single flat rate. add_vat=True means VAT is appended on top of the
subtotal; add_vat=False means the total equals the subtotal (prices already
include VAT, or VAT does not apply).
"""
import time
from typing import Iterable, Optional

from models.product import Product
from models.purchase_order import OrderItem, OrderTotals

VAT_RATE = 0.18
CURRENCY_PLACES = 2


def _money(value: float) -> float:
    return round(value, CURRENCY_PLACES)


def calculate_totals(items: Iterable[OrderItem], add_vat: bool) -> OrderTotals:
    """
    Sum the stored total_price of each item and apply VAT.

    Uses each item's stored total rather than re-deriving quantity * unit_price;
    keep items current with revise_item() before calling this.
    """
    subtotal = _money(sum(item.total_price for item in items))
    vat_amount = _money(subtotal * VAT_RATE) if add_vat else 0.0
    return OrderTotals(
        subtotal=subtotal,
        vat_rate=VAT_RATE,
        vat_amount=vat_amount,
        total=_money(subtotal + vat_amount),
    )


def new_item_id() -> str:
    return f"item-{time.time_ns() // 1000}"


def line_item_for(product: Product, quantity: int = 1, item_id: Optional[str] = None) -> OrderItem:
    """Snapshot a catalog product into a new order line."""
    return OrderItem(
        id=item_id or new_item_id(),
        product_id=product.id,
        product_name=product.name,
        description=product.description,
        sku=product.sku,
        quantity=quantity,
        unit_price=product.price,
        total_price=_money(quantity * product.price),
    )


def revise_item(
    item: OrderItem,
    quantity: Optional[int] = None,
    unit_price: Optional[float] = None,
    product: Optional[Product] = None,
) -> OrderItem:
    """
    Return a copy of item with the given changes and a recomputed total.

    Selecting a different product re-snapshots its name, description, sku
    and price; an explicit unit_price still wins over the catalog price.
    """
    updates: dict = {}
    if product is not None and product.id != item.product_id:
        updates.update(
            product_id=product.id,
            product_name=product.name,
            description=product.description,
            sku=product.sku,
            unit_price=product.price,
        )
    if quantity is not None:
        updates["quantity"] = quantity
    if unit_price is not None:
        updates["unit_price"] = unit_price

    revised = item.model_copy(update=updates)
    revised.total_price = _money(revised.quantity * revised.unit_price)
    return revised
