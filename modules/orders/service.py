"""Purchase order cascades.

Each cascade is a sequence of independent writes. Steps are ordered so that
the record marking progress (item status, order status) is written last, and
the non-idempotent ones (quantity deltas) are journaled in a ``UnitOfWork`` so
a retried cascade converges instead of applying them twice.
"""

import hashlib
import json
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.collections import Collections
from core.errors import (
    ConfirmationRequiredException,
    ForbiddenOperationException,
    InvalidTransitionException,
    NotFoundException,
    ValidationAppException,
)
from core.identifiers import PURCHASE_ORDER_PREFIX, document_number, new_id
from core.results import OperationResult, operation
from core.store import where
from core.unit_of_work import UnitOfWork
from modules.aggregates.service import order_total, recalculate_order_total
from modules.materials import lifecycle as material_lifecycle
from modules.materials.lifecycle import MATERIAL_TRANSITIONS, MaterialEvent
from modules.materials.schemas import MaterialStatus
from modules.materials.service import materials_on_orders
from modules.orders import lifecycle
from modules.orders.lifecycle import ITEM_TRANSITIONS, ORDER_TRANSITIONS, OrderEvent
from modules.orders.schemas import (
    MaterialDisposal,
    Order,
    OrderCreate,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
)
from modules.products import readiness
from modules.projects.lifecycle import ProjectEvent
from modules.projects.service import project_ids_for_products, promote_projects

logger = logging.getLogger(__name__)


def _log_extra(ctx, order_id: str) -> Dict[str, Any]:
    return {"tenant_id": ctx.tenant_id, "entity_key": f"order:{order_id}"}


async def _require_order(ctx, order_id: str) -> Dict[str, Any]:
    return await ctx.require(Collections.ORDERS, order_id, "Order not found")


async def _order_items(ctx, order_id: str) -> List[Dict[str, Any]]:
    return await ctx.query(Collections.ORDER_ITEMS, where("order_id", "==", order_id))


async def _materials_by_id(ctx, material_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    ids = sorted({mid for mid in material_ids if mid})
    if not ids:
        return {}
    return {m["id"]: m for m in await ctx.query(Collections.PRODUCT_MATERIALS, where("id", "in", ids))}


def _joined(values: Iterable[str]) -> str:
    seen = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return ", ".join(seen)


def merge_order_lines(
    order_id: str,
    materials: List[Dict[str, Any]],
    products: Dict[str, Dict[str, Any]],
    expected_prices: Optional[Dict[str, float]] = None,
) -> List[OrderItem]:
    """Group materials by ``(name, unit)`` into order lines.

    Quantities and expected prices of merged materials are summed. Lines whose
    total quantity is not positive are dropped.
    """
    expected_prices = expected_prices or {}
    groups: Dict[Tuple[str, str], List[Dict[str, Any]]] = {}
    for material in materials:
        key = (material.get("material_name", "").strip(), material.get("unit", "").strip())
        groups.setdefault(key, []).append(material)

    lines = []
    for (name, unit), grouped in groups.items():
        quantity = sum(m.get("quantity") or 0.0 for m in grouped)
        if quantity <= 0:
            continue
        product_ids = [m.get("product_id", "") for m in grouped]
        owners = [products.get(pid, {}) for pid in product_ids]
        project_ids = {o.get("project_id", "") for o in owners}
        lines.append(
            OrderItem(
                id=new_id(),
                order_id=order_id,
                product_material_ids=[m["id"] for m in grouped],
                product_id=product_ids[0] if len(set(product_ids)) == 1 else "",
                product_name=_joined(o.get("name", "") for o in owners),
                project_id=project_ids.pop() if len(project_ids) == 1 else "",
                material_name=name,
                quantity=quantity,
                unit=unit,
                expected_price=sum(expected_prices.get(m["id"], m.get("unit_price") or 0.0) for m in grouped),
            )
        )
    return lines


async def add_order(ctx, data: OrderCreate) -> Dict[str, Any]:
    """Create a Draft order from unordered materials; returns the order with its items."""
    if not data.material_ids:
        raise ValidationAppException("Select at least one material")

    materials = await _materials_by_id(ctx, data.material_ids)
    missing = [mid for mid in data.material_ids if mid not in materials]
    if missing:
        raise NotFoundException(f"Materials not found: {', '.join(missing)}")

    taken = await materials_on_orders(ctx)
    for material in materials.values():
        if material["id"] in taken or not material_lifecycle.is_orderable(
            material.get("status", MaterialStatus.NOT_ORDERED), material.get("order_id", "")
        ):
            raise ValidationAppException(f"Material {material.get('material_name')} is already ordered")

    supplier_name = data.supplier_name
    if data.supplier_id:
        supplier = await ctx.require(Collections.SUPPLIERS, data.supplier_id, "Supplier not found")
        supplier_name = supplier.get("name", "")

    product_ids = {m.get("product_id") for m in materials.values() if m.get("product_id")}
    products = {p["id"]: p for p in await ctx.query(Collections.PRODUCTS, where("id", "in", sorted(product_ids)))}

    order_id = new_id()
    ordered = [materials[mid] for mid in dict.fromkeys(data.material_ids)]
    items = merge_order_lines(order_id, ordered, products, data.expected_prices)
    if not items:
        raise ValidationAppException("No order lines with a positive quantity")

    order = Order(
        id=order_id,
        supplier_id=data.supplier_id,
        supplier_name=supplier_name,
        order_number=document_number(PURCHASE_ORDER_PREFIX, ctx.today()),
        order_date=ctx.timestamp(),
        expected_delivery=data.expected_delivery,
        total_amount=order_total(items),
        notes=data.notes,
    )
    record = await ctx.add(Collections.ORDERS, order.to_record())
    for item in items:
        await ctx.add(Collections.ORDER_ITEMS, item.to_record())

    logger.info(
        "Created order %s with %d lines from %d materials",
        order.order_number,
        len(items),
        len(ordered),
        extra=_log_extra(ctx, order_id),
    )
    return {**record, "items": [i.to_record() for i in items]}


@operation("Failed to create order")
async def create_order(ctx, data: OrderCreate) -> OperationResult:
    return OperationResult.ok("Order created", await add_order(ctx, data), status_code=201)


async def _order_material(ctx, order_id: str, material: Dict[str, Any], ordered_quantity: float) -> None:
    target = MATERIAL_TRANSITIONS.apply(material.get("status", MaterialStatus.NOT_ORDERED), MaterialEvent.ORDER)
    await ctx.update(
        Collections.PRODUCT_MATERIALS,
        material["id"],
        {"status": target.value, "order_id": order_id, "ordered_quantity": ordered_quantity},
    )


async def _send(ctx, order: Dict[str, Any]) -> Dict[str, Any]:
    order_id = order["id"]
    target = ORDER_TRANSITIONS.apply(order.get("status"), OrderEvent.SEND)
    items = await _order_items(ctx, order_id)
    if not items:
        raise ValidationAppException("Order has no items")

    pending = [i for i in items if i.get("status") != OrderItemStatus.RECEIVED.value]
    materials = await _materials_by_id(ctx, (mid for i in pending for mid in i.get("product_material_ids") or []))
    for material in materials.values():
        if not MATERIAL_TRANSITIONS.can(material.get("status", MaterialStatus.NOT_ORDERED), MaterialEvent.ORDER):
            raise InvalidTransitionException(
                f"Material {material.get('material_name')} is {material.get('status')} and cannot be ordered"
            )

    async with UnitOfWork(ctx, f"order:{order_id}", "send") as uow:
        for item in pending:
            grouped = [materials[mid] for mid in item.get("product_material_ids") or [] if mid in materials]
            # spread edits made while in Draft evenly over the grouped materials
            share = 0.0
            if grouped:
                share = (item.get("quantity", 0.0) - sum(m.get("quantity") or 0.0 for m in grouped)) / len(grouped)
            for material in grouped:
                await uow.step(
                    f"material:{material['id']}",
                    _order_material,
                    ctx,
                    order_id,
                    material,
                    (material.get("quantity") or 0.0) + share,
                )
            item_status = ITEM_TRANSITIONS.apply(item.get("status"), OrderEvent.SEND)
            await uow.step(
                f"item:{item['id']}", ctx.update, Collections.ORDER_ITEMS, item["id"], {"status": item_status.value}
            )

        product_ids = sorted({m.get("product_id") for m in materials.values() if m.get("product_id")})
        products_ordered = await uow.step("products", readiness.mark_materials_ordered, ctx, product_ids) or []
        project_ids = await project_ids_for_products(ctx, product_ids)
        await uow.step("projects", promote_projects, ctx, project_ids, ProjectEvent.MATERIALS_ORDERED)
        updated = await uow.step(
            "order",
            ctx.update,
            Collections.ORDERS,
            order_id,
            {"status": target.value, "sent_date": order.get("sent_date") or ctx.timestamp()},
        )

    logger.info(
        "Order %s sent: %d items, %d materials ordered",
        order.get("order_number", order_id),
        len(pending),
        len(materials),
        extra=_log_extra(ctx, order_id),
    )
    return {"order": updated, "items_ordered": len(pending), "products_ordered": products_ordered}


@operation("Failed to send order")
async def mark_order_sent(ctx, order_id: str) -> OperationResult:
    order = await _require_order(ctx, order_id)
    return OperationResult.ok("Order sent", await _send(ctx, order))


async def _receive_material(ctx, material: Dict[str, Any], stamp: str) -> None:
    status = material.get("status", MaterialStatus.NOT_ORDERED)
    target = MATERIAL_TRANSITIONS.advance(status, MaterialEvent.RECEIVE)
    if target == status:
        return
    await ctx.update(
        Collections.PRODUCT_MATERIALS,
        material["id"],
        {"status": MaterialStatus(target).value, "received_date": stamp},
    )


async def _refresh_order_status(ctx, order_id: str) -> Optional[str]:
    order = await ctx.get(Collections.ORDERS, order_id)
    if order is None:
        return None
    items = await _order_items(ctx, order_id)
    if not lifecycle.all_received(i.get("status") for i in items):
        return order.get("status")
    target = ORDER_TRANSITIONS.advance(order.get("status"), OrderEvent.RECEIVE)
    if target != order.get("status"):
        await ctx.update(
            Collections.ORDERS, order_id, {"status": OrderStatus(target).value, "received_date": ctx.timestamp()}
        )
    return OrderStatus(target).value


async def _receive(ctx, items: List[Dict[str, Any]]) -> Dict[str, Any]:
    # validate everything before the first write
    for item in items:
        ITEM_TRANSITIONS.apply(item.get("status"), OrderEvent.RECEIVE)

    to_receive = [i for i in items if i.get("status") != OrderItemStatus.RECEIVED.value]
    # products of already received items are re-checked too, so a retry finishes the readiness step
    materials = await _materials_by_id(ctx, (mid for i in items for mid in i.get("product_material_ids") or []))
    stamp = ctx.timestamp()

    for item in to_receive:
        for mid in item.get("product_material_ids") or []:
            if mid in materials:
                await _receive_material(ctx, materials[mid], stamp)
        await ctx.update(
            Collections.ORDER_ITEMS,
            item["id"],
            {
                "status": OrderItemStatus.RECEIVED.value,
                "received_date": stamp,
                "received_quantity": item.get("quantity", 0.0),
            },
        )

    order_statuses = {}
    for order_id in sorted({i["order_id"] for i in items}):
        order_statuses[order_id] = await _refresh_order_status(ctx, order_id)

    product_ids = sorted({m.get("product_id") for m in materials.values() if m.get("product_id")})
    ready = await readiness.refresh_materials_ready(ctx, product_ids)
    return {
        "received": len(to_receive),
        "already_received": len(items) - len(to_receive),
        "order_statuses": order_statuses,
        "products_ready": ready,
    }


@operation("Failed to receive materials")
async def receive_items(ctx, item_ids: List[str]) -> OperationResult:
    if not item_ids:
        raise ValidationAppException("Select at least one order item")
    items = await ctx.query(Collections.ORDER_ITEMS, where("id", "in", list(item_ids)))
    found = {i["id"] for i in items}
    missing = [iid for iid in item_ids if iid not in found]
    if missing:
        raise NotFoundException(f"Order items not found: {', '.join(missing)}")

    data = await _receive(ctx, items)
    return OperationResult.ok(f"{data['received']} items received", data)


async def _revert(ctx, order: Dict[str, Any], confirm: bool) -> Dict[str, Any]:
    order_id = order["id"]
    target = ORDER_TRANSITIONS.apply(order.get("status"), OrderEvent.REVERT)
    if not confirm:
        raise ConfirmationRequiredException(
            "Reverting to Draft resets every non-received material; confirm to continue"
        )

    items = [i for i in await _order_items(ctx, order_id) if i.get("status") != OrderItemStatus.RECEIVED.value]
    materials = await _materials_by_id(ctx, (mid for i in items for mid in i.get("product_material_ids") or []))
    reset = 0
    for item in items:
        for mid in item.get("product_material_ids") or []:
            material = materials.get(mid)
            if material is not None and await _give_back(ctx, material, order_id):
                reset += 1
        if ITEM_TRANSITIONS.can(item.get("status"), OrderEvent.REVERT):
            item_status = ITEM_TRANSITIONS.apply(item.get("status"), OrderEvent.REVERT)
            await ctx.update(Collections.ORDER_ITEMS, item["id"], {"status": item_status.value})
    updated = await ctx.update(Collections.ORDERS, order_id, {"status": target.value, "sent_date": None})
    logger.info("Order %s reverted to Draft, %d materials reset", order_id, reset, extra=_log_extra(ctx, order_id))
    return {"order": updated, "materials_reset": reset}


@operation("Failed to update order status")
async def update_order_status(ctx, order_id: str, status: OrderStatus, confirm: bool = False) -> OperationResult:
    order = await _require_order(ctx, order_id)
    status = OrderStatus(status)
    if status == OrderStatus.PARTIALLY_RECEIVED:
        raise ValidationAppException("PartiallyReceived is derived from item statuses and cannot be set")

    if status == OrderStatus.SENT:
        return OperationResult.ok("Order sent", await _send(ctx, order))
    if status == OrderStatus.DRAFT:
        return OperationResult.ok("Order reverted to Draft", await _revert(ctx, order, confirm))

    ORDER_TRANSITIONS.apply(order.get("status"), OrderEvent.RECEIVE)
    items = await _order_items(ctx, order_id)
    data = await _receive(ctx, items)
    return OperationResult.ok("Order received", data)


async def _adjust_ordered_quantity(ctx, material_id: str, delta: float) -> None:
    material = await ctx.require(Collections.PRODUCT_MATERIALS, material_id, "Material not found")
    current = material.get("ordered_quantity")
    if current is None:
        current = material.get("quantity") or 0.0
    await ctx.update(Collections.PRODUCT_MATERIALS, material_id, {"ordered_quantity": current + delta})


def _edit_signature(quantities: Dict[str, float]) -> str:
    payload = json.dumps(quantities, sort_keys=True).encode()
    return hashlib.sha1(payload).hexdigest()[:12]


@operation("Failed to update quantities")
async def update_item_quantities(ctx, order_id: str, quantities: Dict[str, float]) -> OperationResult:
    order = await _require_order(ctx, order_id)
    if not quantities:
        raise ValidationAppException("No quantities given")

    items = {i["id"]: i for i in await _order_items(ctx, order_id)}
    limit = ctx.settings.max_order_item_quantity
    for item_id, quantity in quantities.items():
        item = items.get(item_id)
        if item is None:
            raise NotFoundException(f"Order item {item_id} not found")
        if item.get("status") == OrderItemStatus.RECEIVED.value:
            raise ForbiddenOperationException(f"{item.get('material_name')} is already received")
        if not 0 < quantity <= limit:
            raise ValidationAppException(f"Quantity for {item.get('material_name')} must be in (0, {limit:g}]")

    is_sent = order.get("status") == OrderStatus.SENT.value
    async with UnitOfWork(ctx, f"order:{order_id}", f"edit_quantities:{_edit_signature(quantities)}") as uow:
        for item_id, quantity in quantities.items():
            item = items[item_id]
            delta = quantity - (item.get("quantity") or 0.0)
            material_ids = item.get("product_material_ids") or []
            if is_sent and delta and material_ids:
                share = delta / len(material_ids)
                for mid in material_ids:
                    await uow.step(f"material:{item_id}:{mid}", _adjust_ordered_quantity, ctx, mid, share)
            await uow.step(f"item:{item_id}", ctx.update, Collections.ORDER_ITEMS, item_id, {"quantity": quantity})
        total = await recalculate_order_total(ctx, order_id)

    return OperationResult.ok("Quantities updated", {"total_amount": total, "updated": len(quantities)})


async def _give_back(ctx, material: Dict[str, Any], order_id: str) -> bool:
    """Return an ordered material to NotOrdered. False when it is not ordered on ``order_id``."""
    if material.get("status") != MaterialStatus.ORDERED.value or material.get("order_id") != order_id:
        return False
    target = MATERIAL_TRANSITIONS.apply(material.get("status"), MaterialEvent.GIVE_BACK)
    await ctx.update(
        Collections.PRODUCT_MATERIALS,
        material["id"],
        {"status": target.value, "order_id": "", "ordered_quantity": None},
    )
    return True


@operation("Failed to delete order items")
async def delete_order_items(ctx, item_ids: List[str], cascade_empty_order: bool = False) -> OperationResult:
    if not item_ids:
        raise ValidationAppException("Select at least one order item")
    items = await ctx.query(Collections.ORDER_ITEMS, where("id", "in", list(item_ids)))
    if not items:
        raise NotFoundException("Order items not found")

    received = [i for i in items if i.get("status") == OrderItemStatus.RECEIVED.value]
    deletable = [i for i in items if i.get("status") != OrderItemStatus.RECEIVED.value]
    if not deletable:
        raise ForbiddenOperationException("Received items cannot be deleted")
    if received:
        logger.warning(
            "Skipping %d received items on delete",
            len(received),
            extra={"tenant_id": ctx.tenant_id},
        )

    materials = await _materials_by_id(ctx, (mid for i in deletable for mid in i.get("product_material_ids") or []))
    given_back = 0
    for item in deletable:
        for mid in item.get("product_material_ids") or []:
            if mid in materials and await _give_back(ctx, materials[mid], item["order_id"]):
                given_back += 1
    await ctx.batch_delete(Collections.ORDER_ITEMS, [i["id"] for i in deletable])

    order_ids = sorted({i["order_id"] for i in deletable})
    empty, deleted_orders = [], []
    for order_id in order_ids:
        await recalculate_order_total(ctx, order_id)
        if not await _order_items(ctx, order_id):
            empty.append(order_id)
            if cascade_empty_order:
                await ctx.delete(Collections.ORDERS, order_id)
                deleted_orders.append(order_id)

    message = f"{len(deletable)} items deleted"
    if received:
        message += f"; {len(received)} received items were kept"
    return OperationResult.ok(
        message,
        {
            "deleted": len(deletable),
            "skipped_received": [i["id"] for i in received],
            "materials_reset": given_back,
            "order_empty": bool(empty),
            "empty_orders": empty,
            "deleted_orders": deleted_orders,
        },
    )


async def _dispose_material(ctx, material: Dict[str, Any], disposal: MaterialDisposal, stamp: str) -> None:
    status = material.get("status", MaterialStatus.NOT_ORDERED)
    if disposal == MaterialDisposal.RESET:
        target = MATERIAL_TRANSITIONS.advance(status, MaterialEvent.GIVE_BACK)
        changes = {"status": MaterialStatus(target).value, "order_id": "", "ordered_quantity": None}
    else:
        target = MATERIAL_TRANSITIONS.advance(status, MaterialEvent.RECEIVE)
        changes = {"status": MaterialStatus(target).value, "order_id": ""}
        if target != status:
            changes["received_date"] = stamp
    await ctx.update(Collections.PRODUCT_MATERIALS, material["id"], changes)


@operation("Failed to delete order")
async def delete_order(ctx, order_id: str, disposal: MaterialDisposal) -> OperationResult:
    await _require_order(ctx, order_id)
    disposal = MaterialDisposal(disposal)
    items = await _order_items(ctx, order_id)
    in_flight = [i for i in items if i.get("status") != OrderItemStatus.RECEIVED.value]
    materials = await _materials_by_id(ctx, (mid for i in in_flight for mid in i.get("product_material_ids") or []))
    stamp = ctx.timestamp()

    async with UnitOfWork(ctx, f"order:{order_id}", f"delete:{disposal.value}") as uow:
        for material in materials.values():
            await uow.step(f"material:{material['id']}", _dispose_material, ctx, material, disposal, stamp)
        ready = []
        if disposal == MaterialDisposal.RECEIVED:
            product_ids = sorted({m.get("product_id") for m in materials.values() if m.get("product_id")})
            ready = await uow.step("products", readiness.refresh_materials_ready, ctx, product_ids) or []
        await uow.step("items", ctx.batch_delete, Collections.ORDER_ITEMS, [i["id"] for i in items])
        await ctx.delete(Collections.ORDERS, order_id)

    logger.info(
        "Deleted order %s, %d materials %s",
        order_id,
        len(materials),
        "reset" if disposal == MaterialDisposal.RESET else "marked received",
        extra=_log_extra(ctx, order_id),
    )
    return OperationResult.ok(
        "Order deleted", {"materials": len(materials), "disposal": disposal.value, "products_ready": ready}
    )


def _with_display_status(order: Dict[str, Any], items: List[Dict[str, Any]]) -> Dict[str, Any]:
    shown = lifecycle.display_status(order.get("status", OrderStatus.DRAFT), (i.get("status") for i in items))
    received, total = lifecycle.received_counts(i.get("status") for i in items)
    return {**order, "items": items, "display_status": shown.value, "received_count": received, "item_count": total}


@operation("Failed to load order")
async def get_order(ctx, order_id: str) -> OperationResult:
    order = await _require_order(ctx, order_id)
    return OperationResult.ok("Order loaded", _with_display_status(order, await _order_items(ctx, order_id)))


@operation("Failed to load orders")
async def list_orders(ctx) -> OperationResult:
    orders = await ctx.query(Collections.ORDERS)
    items = await ctx.query(Collections.ORDER_ITEMS)
    by_order: Dict[str, List[Dict[str, Any]]] = {o["id"]: [] for o in orders}
    for item in items:
        by_order.setdefault(item.get("order_id"), []).append(item)
    return OperationResult.ok(f"{len(orders)} orders", [_with_display_status(o, by_order[o["id"]]) for o in orders])
