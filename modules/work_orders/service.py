import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from core.collections import Collections
from core.errors import ForbiddenOperationException, ValidationAppException
from core.identifiers import WORK_ORDER_PREFIX, document_number, new_id
from core.results import OperationResult, operation
from core.store import where
from core.unit_of_work import UnitOfWork
from modules.materials import lifecycle as material_lifecycle
from modules.materials.schemas import MaterialStatus
from modules.materials.service import materials_on_orders
from modules.orders.schemas import OrderCreate
from modules.orders.service import add_order
from modules.products import lifecycle as product_lifecycle
from modules.products import readiness
from modules.products.schemas import ProductStatus
from modules.projects.lifecycle import ProjectEvent
from modules.projects.service import promote_projects, resync_project
from modules.tasks.service import add_procurement_task
from modules.work_orders import lifecycle, schemas
from modules.work_orders.lifecycle import ITEM_TRANSITIONS, WORK_ORDER_TRANSITIONS, WorkOrderEvent
from modules.work_orders.schemas import (
    ProcessStatus,
    ProductDisposal,
    WorkOrderItemStatus,
    WorkOrderStatus,
)

logger = logging.getLogger(__name__)


def _log_extra(ctx, work_order_id: str) -> Dict[str, Any]:
    return {"tenant_id": ctx.tenant_id, "entity_key": f"work_order:{work_order_id}"}


async def _require_work_order(ctx, work_order_id: str) -> Dict[str, Any]:
    return await ctx.require(Collections.WORK_ORDERS, work_order_id, "Work order not found")


async def _items(ctx, work_order_id: str) -> List[Dict[str, Any]]:
    return await ctx.query(Collections.WORK_ORDER_ITEMS, where("work_order_id", "==", work_order_id))


async def _essential_materials(ctx, product_id: str) -> List[Dict[str, Any]]:
    materials = await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "==", product_id))
    return lifecycle.missing_essential_materials(materials)


@operation("Failed to create work order")
async def create_work_order(ctx, data: schemas.WorkOrderCreate) -> OperationResult:
    if not data.items:
        raise ValidationAppException("Add at least one product")
    steps = list(data.production_steps or ctx.settings.default_production_steps)

    product_ids = sorted({i.product_id for i in data.items})
    products = {p["id"]: p for p in await ctx.query(Collections.PRODUCTS, where("id", "in", product_ids))}
    worker_ids = sorted(
        {p.worker_id for i in data.items for p in i.processes if p.worker_id}
        | {h for i in data.items for p in i.processes for h in p.helpers}
    )
    workers = {}
    if worker_ids:
        workers = {w["id"]: w for w in await ctx.query(Collections.WORKERS, where("id", "in", worker_ids))}

    work_order_id = new_id()
    items = []
    for entry in data.items:
        product = products.get(entry.product_id)
        if product is None:
            raise ValidationAppException(f"Product {entry.product_id} not found")
        assignments = {}
        for process in entry.processes:
            if process.step not in steps:
                raise ValidationAppException(f"Unknown production step: {process.step}")
            assignments[process.step] = process
        processes = []
        for step in steps:
            process = assignments.get(step) or schemas.ProcessAssignmentIn(step=step)
            processes.append(
                schemas.ProcessAssignment(
                    step=step,
                    worker_id=process.worker_id,
                    worker_name=workers.get(process.worker_id, {}).get("name", ""),
                    helpers=[
                        schemas.Helper(worker_id=h, worker_name=workers.get(h, {}).get("name", ""))
                        for h in process.helpers
                    ],
                )
            )
        items.append(
            schemas.WorkOrderItem(
                id=new_id(),
                work_order_id=work_order_id,
                product_id=entry.product_id,
                product_name=product.get("name", ""),
                project_id=product.get("project_id", ""),
                quantity=entry.quantity,
                product_value=entry.product_value,
                material_cost=product.get("material_cost") or 0.0,
                processes=processes,
            )
        )

    work_order = schemas.WorkOrder(
        id=work_order_id,
        work_order_number=document_number(WORK_ORDER_PREFIX, ctx.today()),
        created_date=ctx.timestamp(),
        production_steps=steps,
        due_date=data.due_date,
        notes=data.notes,
    )
    record = await ctx.add(Collections.WORK_ORDERS, work_order.to_record())
    for item in items:
        await ctx.add(Collections.WORK_ORDER_ITEMS, item.to_record())

    logger.info("Created work order %s", work_order.work_order_number, extra=_log_extra(ctx, work_order_id))
    return OperationResult.ok(
        "Work order created", {**record, "items": [i.to_record() for i in items]}, status_code=201
    )


async def _check_workers(ctx, items: List[Dict[str, Any]]) -> None:
    for item in items:
        for worker in lifecycle.assigned_workers(item.get("processes") or []):
            availability = await ctx.availability.can_start(worker["worker_id"])
            if not availability.allowed:
                name = worker["worker_name"] or worker["worker_id"]
                reason = f": {availability.reason}" if availability.reason else ""
                raise ForbiddenOperationException(f"{worker['role']} {name} is not available today{reason}")


async def _check_materials(ctx, items: List[Dict[str, Any]]) -> None:
    for item in items:
        missing = await _essential_materials(ctx, item["product_id"])
        if missing:
            names = ", ".join(m.get("material_name", "") for m in missing)
            raise ForbiddenOperationException(
                f"Essential materials not ready for {item.get('product_name') or item['product_id']}: {names}"
            )


def _planned(work_order: Dict[str, Any], field: str) -> Optional[date]:
    value = work_order.get(field)
    if not value:
        return None
    return date.fromisoformat(str(value)[:10])


def _planned_start(work_order: Dict[str, Any]) -> Optional[date]:
    return _planned(work_order, "planned_start_date")


@operation("Failed to start work order")
async def start_work_order(ctx, work_order_id: str) -> OperationResult:
    work_order = await _require_work_order(ctx, work_order_id)
    target = WORK_ORDER_TRANSITIONS.apply(work_order.get("status"), WorkOrderEvent.START)

    planned = _planned_start(work_order)
    if planned is not None and planned > ctx.today():
        raise ForbiddenOperationException(f"Work order is scheduled for {planned.isoformat()} and cannot start earlier")

    items = await _items(ctx, work_order_id)
    if not items:
        raise ValidationAppException("Work order has no items")

    # every item passes both checks before anything is written
    await _check_workers(ctx, items)
    await _check_materials(ctx, items)

    steps = work_order.get("production_steps") or ctx.settings.default_production_steps
    stamp = ctx.timestamp()
    product_ids = sorted({i["product_id"] for i in items})
    project_ids = sorted({i.get("project_id") for i in items if i.get("project_id")})

    async with UnitOfWork(ctx, f"work_order:{work_order_id}", "start") as uow:
        for item in items:
            if ITEM_TRANSITIONS.can(item.get("status"), WorkOrderEvent.START):
                item_status = ITEM_TRANSITIONS.apply(item.get("status"), WorkOrderEvent.START)
                await uow.step(
                    f"item:{item['id']}",
                    ctx.update,
                    Collections.WORK_ORDER_ITEMS,
                    item["id"],
                    {"status": item_status.value, "started_at": stamp},
                )
        await uow.step("products", readiness.set_status, ctx, product_ids, steps[0])
        await uow.step("projects", promote_projects, ctx, project_ids, ProjectEvent.PRODUCTION_STARTED)
        updated = await uow.step(
            "work_order", ctx.update, Collections.WORK_ORDERS, work_order_id, {"status": target.value, "started_at": stamp}
        )

    logger.info("Started work order %s with %d items", work_order_id, len(items), extra=_log_extra(ctx, work_order_id))
    return OperationResult.ok("Work order started", updated)


async def find_worker_conflicts(
    ctx, worker_ids: List[str], start: date, end: date, exclude_work_order_id: Optional[str] = None
) -> List[Dict[str, Any]]:
    """Scheduled work orders that already claim one of ``worker_ids`` on overlapping days."""
    wanted = [w for w in dict.fromkeys(worker_ids) if w]
    if not wanted:
        return []

    conflicts = []
    for other in await ctx.query(Collections.WORK_ORDERS, where("is_scheduled", "==", True)):
        if other["id"] == exclude_work_order_id or other.get("status") == WorkOrderStatus.COMPLETED.value:
            continue
        other_start = _planned_start(other)
        if other_start is None:
            continue
        shared = lifecycle.overlap(start, end, other_start, _planned(other, "planned_end_date") or other_start)
        if shared is None:
            continue

        items = await _items(ctx, other["id"])
        assigned = {w["worker_id"]: w for i in items for w in lifecycle.assigned_workers(i.get("processes") or [])}
        for worker_id in wanted:
            if worker_id not in assigned:
                continue
            conflicts.append(
                {
                    "worker_id": worker_id,
                    "worker_name": assigned[worker_id]["worker_name"],
                    "work_order_id": other["id"],
                    "work_order_number": other.get("work_order_number", ""),
                    "project_id": items[0].get("project_id", "") if items else "",
                    "overlap_start": shared[0].isoformat(),
                    "overlap_end": shared[1].isoformat(),
                }
            )
    return conflicts


@operation("Failed to check worker conflicts")
async def check_worker_conflicts(
    ctx, worker_ids: List[str], start: date, end: date, exclude_work_order_id: Optional[str] = None
) -> OperationResult:
    if end < start:
        raise ValidationAppException("Planned end date must not be before the start date")
    conflicts = await find_worker_conflicts(ctx, worker_ids, start, end, exclude_work_order_id)
    message = f"{len(conflicts)} worker conflicts" if conflicts else "No worker conflicts"
    return OperationResult.ok(message, {"has_conflicts": bool(conflicts), "conflicts": conflicts})


async def _own_conflicts(ctx, work_order_id: str, items: List[Dict[str, Any]], start: date, end: date):
    worker_ids = [w["worker_id"] for i in items for w in lifecycle.assigned_workers(i.get("processes") or [])]
    return await find_worker_conflicts(ctx, worker_ids, start, end, exclude_work_order_id=work_order_id)


async def _order_missing_materials(
    ctx, work_order: Dict[str, Any], items: List[Dict[str, Any]], start: date
) -> List[Dict[str, Any]]:
    """One Draft order per supplier for the work order's materials that are on no order yet."""
    taken = await materials_on_orders(ctx)
    by_supplier: Dict[str, List[str]] = {}
    seen = set()
    for item in items:
        for material in await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "==", item["product_id"])):
            if material["id"] in seen or material["id"] in taken or (material.get("quantity") or 0.0) <= 0:
                continue
            if not material_lifecycle.is_orderable(
                material.get("status", MaterialStatus.NOT_ORDERED), material.get("order_id", "")
            ):
                continue
            seen.add(material["id"])
            by_supplier.setdefault(material.get("supplier") or "", []).append(material["id"])
    if not by_supplier:
        return []

    supplier_ids = {s.get("name"): s["id"] for s in await ctx.query(Collections.SUPPLIERS)}
    delivery = (start - timedelta(days=1)).isoformat()
    number = work_order.get("work_order_number") or work_order["id"]
    orders = []
    for supplier_name, material_ids in by_supplier.items():
        orders.append(
            await add_order(
                ctx,
                OrderCreate(
                    supplier_id=supplier_ids.get(supplier_name, ""),
                    supplier_name=supplier_name,
                    material_ids=material_ids,
                    expected_delivery=delivery,
                    notes=f"Created for work order {number}, planned start {start.isoformat()}",
                ),
            )
        )
    return orders


@operation("Failed to schedule work order")
async def schedule_work_order(ctx, work_order_id: str, start: date, end: date) -> OperationResult:
    work_order = await _require_work_order(ctx, work_order_id)
    if end < start:
        raise ValidationAppException("Planned end date must not be before the start date")
    target = WORK_ORDER_TRANSITIONS.apply(work_order.get("status"), WorkOrderEvent.SCHEDULE)
    items = await _items(ctx, work_order_id)
    conflicts = await _own_conflicts(ctx, work_order_id, items, start, end)

    updated = await ctx.update(
        Collections.WORK_ORDERS,
        work_order_id,
        {
            "status": target.value,
            "planned_start_date": start.isoformat(),
            "planned_end_date": end.isoformat(),
            "is_scheduled": True,
            "scheduled_at": ctx.timestamp(),
        },
    )

    # both steps skip what an earlier run already created
    tasks = []
    for item in items:
        for material in await _essential_materials(ctx, item["product_id"]):
            task = await add_procurement_task(ctx, updated, item, material)
            if task is not None:
                tasks.append(task)
    orders = []
    if (start - ctx.today()).days <= ctx.settings.auto_order_lead_days:
        orders = await _order_missing_materials(ctx, updated, items, start)

    if tasks or orders:
        logger.info(
            "Work order %s scheduled with %d procurement tasks and %d orders",
            work_order_id,
            len(tasks),
            len(orders),
            extra=_log_extra(ctx, work_order_id),
        )

    message = "Work order scheduled"
    if tasks:
        message += f"; {len(tasks)} tasks created for missing essential materials"
    if orders:
        message += f"; orders created: {', '.join(o['order_number'] for o in orders)}"
    if conflicts:
        message += f"; {len(conflicts)} worker conflicts"
    return OperationResult.ok(
        message, {"work_order": updated, "tasks": tasks, "orders": orders, "worker_conflicts": conflicts}
    )


@operation("Failed to reschedule work order")
async def reschedule_work_order(ctx, work_order_id: str, start: date, end: date) -> OperationResult:
    work_order = await _require_work_order(ctx, work_order_id)
    if end < start:
        raise ValidationAppException("Planned end date must not be before the start date")
    if not work_order.get("is_scheduled"):
        raise ForbiddenOperationException("Work order is not on the schedule")
    WORK_ORDER_TRANSITIONS.apply(work_order.get("status"), WorkOrderEvent.RESCHEDULE)

    conflicts = await _own_conflicts(ctx, work_order_id, await _items(ctx, work_order_id), start, end)
    updated = await ctx.update(
        Collections.WORK_ORDERS,
        work_order_id,
        {"planned_start_date": start.isoformat(), "planned_end_date": end.isoformat()},
    )
    message = "Work order rescheduled"
    if conflicts:
        message += f"; {len(conflicts)} worker conflicts"
    return OperationResult.ok(message, {"work_order": updated, "worker_conflicts": conflicts})


@operation("Failed to unschedule work order")
async def unschedule_work_order(ctx, work_order_id: str) -> OperationResult:
    work_order = await _require_work_order(ctx, work_order_id)
    if work_order.get("status") == WorkOrderStatus.IN_PROGRESS.value:
        raise ForbiddenOperationException("A work order in progress cannot be removed from the schedule")
    target = WORK_ORDER_TRANSITIONS.apply(work_order.get("status"), WorkOrderEvent.UNSCHEDULE)
    updated = await ctx.update(
        Collections.WORK_ORDERS,
        work_order_id,
        {
            "status": target.value,
            "planned_start_date": None,
            "planned_end_date": None,
            "is_scheduled": False,
            "scheduled_at": None,
        },
    )
    return OperationResult.ok("Work order removed from the schedule", updated)


@operation("Failed to complete work order item")
async def complete_work_order_item(ctx, item_id: str, step: str) -> OperationResult:
    item = await ctx.require(Collections.WORK_ORDER_ITEMS, item_id, "Work order item not found")
    work_order = await _require_work_order(ctx, item["work_order_id"])
    steps = work_order.get("production_steps") or ctx.settings.default_production_steps
    if step not in steps:
        raise ValidationAppException(f"{step} is not a production step of this work order")
    if item.get("status") != WorkOrderItemStatus.IN_PROGRESS.value:
        raise ForbiddenOperationException("Only items in progress can complete a production step")

    stamp = ctx.timestamp()
    processes = [dict(p) for p in item.get("processes") or []]
    if not any(p.get("step") == step for p in processes):
        processes.append(schemas.ProcessAssignment(step=step).model_dump(mode="json"))
    for process in processes:
        if process.get("step") == step and process.get("status") != ProcessStatus.COMPLETED.value:
            process.update(status=ProcessStatus.COMPLETED.value, completed_at=stamp)

    completed_steps = [p["step"] for p in processes if p.get("status") == ProcessStatus.COMPLETED.value]
    furthest = lifecycle.furthest_step(steps, completed_steps)
    product_status = product_lifecycle.next_status_after_step(furthest, steps)

    changes: Dict[str, Any] = {"processes": processes, "last_completed_step": furthest}
    item_completed = product_status == ProductStatus.READY.value
    if item_completed:
        changes["status"] = ITEM_TRANSITIONS.apply(item.get("status"), WorkOrderEvent.COMPLETE).value
        changes["completed_at"] = stamp

    await readiness.set_status(ctx, [item["product_id"]], product_status)
    updated = await ctx.update(Collections.WORK_ORDER_ITEMS, item_id, changes)
    if item.get("project_id"):
        await resync_project(ctx, item["project_id"])

    work_order_completed = False
    if item_completed:
        siblings = await _items(ctx, work_order["id"])
        if all(i.get("status") == WorkOrderItemStatus.COMPLETED.value for i in siblings):
            target = WORK_ORDER_TRANSITIONS.advance(work_order.get("status"), WorkOrderEvent.COMPLETE)
            if target != work_order.get("status"):
                await ctx.update(
                    Collections.WORK_ORDERS,
                    work_order["id"],
                    {"status": WorkOrderStatus(target).value, "completed_at": stamp},
                )
                work_order_completed = True

    return OperationResult.ok(
        f"{step} completed",
        {
            "item": updated,
            "product_status": product_status,
            "item_completed": item_completed,
            "work_order_completed": work_order_completed,
        },
    )


@operation("Failed to delete work order")
async def delete_work_order(ctx, work_order_id: str, disposal: ProductDisposal = ProductDisposal.WAITING) -> OperationResult:
    await _require_work_order(ctx, work_order_id)
    disposal = ProductDisposal(disposal)
    items = await _items(ctx, work_order_id)
    status = (
        ProductStatus.READY.value if disposal == ProductDisposal.COMPLETED else ProductStatus.WAITING_FOR_PRODUCTION.value
    )
    product_ids = sorted({i["product_id"] for i in items})
    project_ids = sorted({i.get("project_id") for i in items if i.get("project_id")})

    async with UnitOfWork(ctx, f"work_order:{work_order_id}", f"delete:{disposal.value}") as uow:
        await uow.step("products", readiness.set_status, ctx, product_ids, status)
        for project_id in project_ids:
            await uow.step(f"project:{project_id}", resync_project, ctx, project_id)
        await uow.step("items", ctx.batch_delete, Collections.WORK_ORDER_ITEMS, [i["id"] for i in items])
        await ctx.delete(Collections.WORK_ORDERS, work_order_id)

    logger.info(
        "Deleted work order %s, %d products set to %s",
        work_order_id,
        len(product_ids),
        status,
        extra=_log_extra(ctx, work_order_id),
    )
    return OperationResult.ok("Work order deleted", {"products": product_ids, "product_status": status})


@operation("Failed to load work order")
async def get_work_order(ctx, work_order_id: str) -> OperationResult:
    work_order = await _require_work_order(ctx, work_order_id)
    return OperationResult.ok("Work order loaded", {**work_order, "items": await _items(ctx, work_order_id)})


@operation("Failed to load work orders")
async def list_work_orders(ctx, scheduled_only: bool = False) -> OperationResult:
    predicates = [where("is_scheduled", "==", True)] if scheduled_only else []
    work_orders = await ctx.query(Collections.WORK_ORDERS, *predicates)
    return OperationResult.ok(f"{len(work_orders)} work orders", work_orders)
