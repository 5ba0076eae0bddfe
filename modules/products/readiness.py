"""Product status cascades driven by material and production changes."""

import logging
from typing import Dict, Iterable, List

from core.collections import Collections
from core.store import where
from modules.materials import lifecycle as material_lifecycle
from modules.products.lifecycle import PRODUCT_TRANSITIONS, ProductEvent

logger = logging.getLogger(__name__)


async def _products(ctx, product_ids: Iterable[str]) -> List[Dict]:
    ids = sorted({pid for pid in product_ids if pid})
    if not ids:
        return []
    return await ctx.query(Collections.PRODUCTS, where("id", "in", ids))


async def mark_materials_ordered(ctx, product_ids: Iterable[str]) -> List[str]:
    """Waiting products become MaterialsOrdered. Returns the ids that changed."""
    changed = []
    for product in await _products(ctx, product_ids):
        status = product.get("status")
        target = PRODUCT_TRANSITIONS.advance(status, ProductEvent.MATERIALS_ORDERED)
        if target != status:
            await ctx.update(Collections.PRODUCTS, product["id"], {"status": target.value})
            changed.append(product["id"])
    return changed


async def refresh_materials_ready(ctx, product_ids: Iterable[str]) -> List[str]:
    """Promote pre-production products whose materials are all received, in use or installed."""
    changed = []
    for product in await _products(ctx, product_ids):
        status = product.get("status")
        if not PRODUCT_TRANSITIONS.can(status, ProductEvent.MATERIALS_READY):
            continue
        materials = await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "==", product["id"]))
        if not material_lifecycle.all_terminal_ready(m.get("status") for m in materials):
            continue
        target = PRODUCT_TRANSITIONS.apply(status, ProductEvent.MATERIALS_READY)
        await ctx.update(Collections.PRODUCTS, product["id"], {"status": target.value})
        changed.append(product["id"])
    if changed:
        logger.info("Products ready for production: %s", ", ".join(changed), extra={"tenant_id": ctx.tenant_id})
    return changed


async def set_status(ctx, product_ids: Iterable[str], status: str) -> int:
    count = 0
    for product in await _products(ctx, product_ids):
        if product.get("status") != status:
            await ctx.update(Collections.PRODUCTS, product["id"], {"status": status})
            count += 1
    return count
