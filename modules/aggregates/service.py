"""Derived totals: product material cost and order total amount.

Both recalculations read the current children and overwrite the stored total,
so calling them repeatedly always converges to the same value.
"""

import logging
from typing import Iterable

from core.collections import Collections
from core.store import where
from modules.materials.schemas import ProductMaterial
from modules.orders.schemas import OrderItem

logger = logging.getLogger(__name__)


def line_total(quantity: float, unit_price: float) -> float:
    return (quantity or 0.0) * (unit_price or 0.0)


def material_cost(materials: Iterable[ProductMaterial]) -> float:
    return sum(m.total_price or 0.0 for m in materials)


def order_total(items: Iterable[OrderItem]) -> float:
    return sum(line_total(item.quantity, item.expected_price) for item in items)


async def recalculate_product_cost(ctx, product_id: str) -> float:
    records = await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "==", product_id))
    total = material_cost(ProductMaterial.model_validate(r) for r in records)
    if await ctx.get(Collections.PRODUCTS, product_id) is not None:
        await ctx.update(Collections.PRODUCTS, product_id, {"material_cost": total})
    logger.debug("Product %s material cost = %.2f", product_id, total)
    return total


async def recalculate_order_total(ctx, order_id: str) -> float:
    records = await ctx.query(Collections.ORDER_ITEMS, where("order_id", "==", order_id))
    total = order_total(OrderItem.model_validate(r) for r in records)
    if await ctx.get(Collections.ORDERS, order_id) is not None:
        await ctx.update(Collections.ORDERS, order_id, {"total_amount": total})
    logger.debug("Order %s total amount = %.2f", order_id, total)
    return total
