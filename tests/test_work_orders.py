"""Work order start gating, step completion, scheduling and labor logs."""

from datetime import date

import pytest

from core.collections import Collections
from core.context import TenantContext
from modules.attendance.schemas import Availability
from modules.suppliers import service as supplier_service
from modules.suppliers.schemas import SupplierCreate
from modules.work_logs import service as work_log_service
from modules.work_logs.schemas import WorkLogCreate
from modules.work_orders import service as work_order_service
from modules.work_orders.schemas import ProcessAssignmentIn, ProductDisposal, WorkOrderCreate, WorkOrderItemIn

from conftest import NOW, TENANT


class OnLeave:
    async def can_start(self, worker_id):
        return Availability(allowed=False, reason="On leave")


async def _work_order(ctx, product_ids, steps=None, worker_id=None, helpers=()):
    processes = []
    if worker_id:
        processes = [ProcessAssignmentIn(step=(steps or ["Cutting"])[0], worker_id=worker_id, helpers=list(helpers))]
    result = await work_order_service.create_work_order(
        ctx,
        WorkOrderCreate(
            production_steps=steps,
            items=[WorkOrderItemIn(product_id=pid, processes=processes) for pid in product_ids],
        ),
    )
    assert result.success, result.message
    return result.data


async def test_create_fills_every_step_and_keeps_product_status(ctx, build):
    project = await build.project(status="Approved")
    product = await build.product(project["id"], status="MaterialsReady")
    worker = await build.worker(name="Ivo")

    work_order = await _work_order(ctx, [product["id"]], worker_id=worker["id"])
    item = work_order["items"][0]
    assert work_order["status"] == "Waiting"
    assert work_order["production_steps"] == ["Cutting", "Edging", "Drilling", "Assembly"]
    assert [p["step"] for p in item["processes"]] == work_order["production_steps"]
    assert item["processes"][0]["worker_name"] == "Ivo"
    assert item["project_id"] == project["id"]
    assert (await ctx.get(Collections.PRODUCTS, product["id"]))["status"] == "MaterialsReady"


async def test_unknown_step_assignment_is_rejected(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    result = await work_order_service.create_work_order(
        ctx,
        WorkOrderCreate(
            items=[WorkOrderItemIn(product_id=product["id"], processes=[ProcessAssignmentIn(step="Painting")])]
        ),
    )
    assert not result.success
    assert await ctx.query(Collections.WORK_ORDERS) == []


async def test_start_moves_items_products_and_project(ctx, build):
    project = await build.project(status="Approved")
    product = await build.product(project["id"], status="MaterialsReady")
    await build.material(product["id"], is_essential=True, status="Received")
    worker = await build.worker()
    work_order = await _work_order(ctx, [product["id"]], worker_id=worker["id"])

    result = await work_order_service.start_work_order(ctx, work_order["id"])
    assert result.success, result.message
    assert result.data["status"] == "InProgress"
    assert result.data["started_at"] == NOW.isoformat()

    item = (await ctx.query(Collections.WORK_ORDER_ITEMS))[0]
    assert item["status"] == "InProgress"
    assert (await ctx.get(Collections.PRODUCTS, product["id"]))["status"] == "Cutting"
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "InProduction"


async def test_unavailable_worker_blocks_the_whole_start(ctx, build):
    project = await build.project(status="Approved")
    first = await build.product(project["id"], status="MaterialsReady")
    second = await build.product(project["id"], name="Shelf", status="MaterialsReady")
    available = await build.worker(name="Ana")
    sick = await build.worker(name="Ivo", status="Sick")
    work_order = await _work_order(ctx, [first["id"], second["id"]], worker_id=available["id"], helpers=[sick["id"]])

    result = await work_order_service.start_work_order(ctx, work_order["id"])
    assert not result.success
    assert "Ivo" in result.message

    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["status"] == "Waiting"
    assert all(i["status"] == "Waiting" for i in await ctx.query(Collections.WORK_ORDER_ITEMS))
    assert (await ctx.get(Collections.PRODUCTS, first["id"]))["status"] == "MaterialsReady"
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Approved"


async def test_availability_capability_can_be_replaced(store, settings, build):
    ctx = TenantContext(TENANT, store, settings=settings, availability=OnLeave(), clock=lambda: NOW)
    project = await build.project()
    product = await build.product(project["id"])
    worker = await build.worker(name="Ana")
    work_order = await _work_order(ctx, [product["id"]], worker_id=worker["id"])

    result = await work_order_service.start_work_order(ctx, work_order["id"])
    assert not result.success
    assert "On leave" in result.message


async def test_missing_essential_material_blocks_start(ctx, build):
    project = await build.project(status="Approved")
    product = await build.product(project["id"])
    await build.material(product["id"], name="Oak veneer", is_essential=True)
    await build.material(product["id"], name="Screws", is_essential=False)
    work_order = await _work_order(ctx, [product["id"]])

    result = await work_order_service.start_work_order(ctx, work_order["id"])
    assert not result.success
    assert "Oak veneer" in result.message
    assert "Screws" not in result.message
    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["status"] == "Waiting"


async def test_future_planned_start_blocks_start(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]])
    await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 10), date(2026, 3, 12))

    result = await work_order_service.start_work_order(ctx, work_order["id"])
    assert not result.success
    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["status"] == "Scheduled"


async def test_completing_steps_walks_product_to_ready(ctx, build):
    project = await build.project(status="Approved")
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]], steps=["Cutting", "Assembly"])
    await work_order_service.start_work_order(ctx, work_order["id"])
    item_id = work_order["items"][0]["id"]

    result = await work_order_service.complete_work_order_item(ctx, item_id, "Cutting")
    assert result.success, result.message
    assert result.data["product_status"] == "Assembly"
    assert not result.data["item_completed"]
    assert result.data["item"]["last_completed_step"] == "Cutting"

    result = await work_order_service.complete_work_order_item(ctx, item_id, "Assembly")
    assert result.data["product_status"] == "Ready"
    assert result.data["item_completed"]
    assert result.data["work_order_completed"]

    assert (await ctx.get(Collections.PRODUCTS, product["id"]))["status"] == "Ready"
    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["status"] == "Completed"
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Completed"


async def test_completing_a_step_needs_a_started_item(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]])

    result = await work_order_service.complete_work_order_item(ctx, work_order["items"][0]["id"], "Cutting")
    assert not result.success
    result = await work_order_service.complete_work_order_item(ctx, work_order["items"][0]["id"], "Painting")
    assert not result.success


async def test_scheduling_creates_tasks_for_missing_essentials(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    veneer = await build.material(product["id"], name="Oak veneer", is_essential=True)
    await build.material(product["id"], name="Hinges", is_essential=True, status="OnStock")
    work_order = await _work_order(ctx, [product["id"]])

    result = await work_order_service.schedule_work_order(
        ctx, work_order["id"], date(2026, 3, 9), date(2026, 3, 11)
    )
    assert result.success, result.message
    assert result.data["work_order"]["status"] == "Scheduled"
    assert result.data["work_order"]["is_scheduled"]

    tasks = await ctx.query(Collections.TASKS)
    assert len(tasks) == 1
    assert tasks[0]["priority"] == "Urgent"
    assert tasks[0]["auto_generated"]
    assert tasks[0]["due_date"] == "2026-03-09"
    assert tasks[0]["related_material"] == veneer["id"]

    assert result.data["orders"] == []

    listed = await work_order_service.list_work_orders(ctx, scheduled_only=True)
    assert [w["id"] for w in listed.data] == [work_order["id"]]


async def test_unschedule_is_refused_while_in_progress(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]])
    await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 1), date(2026, 3, 3))
    started = await work_order_service.start_work_order(ctx, work_order["id"])
    assert started.success, started.message

    result = await work_order_service.unschedule_work_order(ctx, work_order["id"])
    assert not result.success
    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["is_scheduled"]


@pytest.mark.parametrize(
    "disposal, product_status", [(ProductDisposal.COMPLETED, "Ready"), (ProductDisposal.WAITING, "WaitingForProduction")]
)
async def test_delete_work_order_applies_product_disposal(ctx, build, disposal, product_status):
    project = await build.project(status="Approved")
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]])
    await work_order_service.start_work_order(ctx, work_order["id"])

    result = await work_order_service.delete_work_order(ctx, work_order["id"], disposal)
    assert result.success, result.message
    assert (await ctx.get(Collections.PRODUCTS, product["id"]))["status"] == product_status
    assert await ctx.query(Collections.WORK_ORDERS) == []
    assert await ctx.query(Collections.WORK_ORDER_ITEMS) == []


async def test_one_work_log_per_worker_item_and_day(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    ivo = await build.worker(name="Ivo", daily_rate=120.0)
    ana = await build.worker(name="Ana", daily_rate=80.0)
    work_order = await _work_order(ctx, [product["id"]])
    item_id = work_order["items"][0]["id"]

    first = await work_log_service.create_work_log(ctx, WorkLogCreate(worker_id=ivo["id"], work_order_item_id=item_id))
    assert first.success, first.message
    assert first.data["date"] == "2026-03-02"
    assert first.data["daily_rate"] == pytest.approx(120.0)

    duplicate = await work_log_service.create_work_log(
        ctx, WorkLogCreate(worker_id=ivo["id"], work_order_item_id=item_id)
    )
    assert not duplicate.success
    await work_log_service.create_work_log(ctx, WorkLogCreate(worker_id=ana["id"], work_order_item_id=item_id))

    cost = await work_log_service.calculate_item_labor_cost(ctx, item_id)
    assert cost.data["total_cost"] == pytest.approx(200.0)
    assert cost.data["total_days"] == 2
    logs = await work_log_service.list_work_logs_for_work_order(ctx, work_order["id"])
    assert len(logs.data) == 2


async def test_scheduling_close_to_start_orders_missing_materials_per_supplier(ctx, build):
    project = await build.project(status="Approved")
    product = await build.product(project["id"])
    timber = (await supplier_service.create_supplier(ctx, SupplierCreate(name="Timber Co"))).data
    await build.material(product["id"], name="Oak board", quantity=3, supplier="Timber Co")
    await build.material(product["id"], name="Hinges", quantity=8, supplier="Hardware Ltd")
    await build.material(product["id"], name="Glass", supplier="Timber Co", status="Received")
    work_order = await _work_order(ctx, [product["id"]])

    result = await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 3), date(2026, 3, 4))
    assert result.success, result.message
    orders = {o["supplier_name"]: o for o in result.data["orders"]}
    assert set(orders) == {"Timber Co", "Hardware Ltd"}
    assert orders["Timber Co"]["supplier_id"] == timber["id"]
    assert orders["Hardware Ltd"]["supplier_id"] == ""
    assert [i["material_name"] for i in orders["Timber Co"]["items"]] == ["Oak board"]
    assert all(o["status"] == "Draft" for o in orders.values())
    assert all(o["expected_delivery"] == "2026-03-02" for o in orders.values())

    again = await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 3), date(2026, 3, 4))
    assert again.success
    assert again.data["orders"] == []
    assert len(await ctx.query(Collections.ORDERS)) == 2


async def test_scheduling_reports_overlapping_worker_assignments(ctx, build):
    project = await build.project()
    first = await build.product(project["id"])
    second = await build.product(project["id"], name="Shelf")
    ana = await build.worker(name="Ana")
    busy = await _work_order(ctx, [first["id"]], worker_id=ana["id"])
    await work_order_service.schedule_work_order(ctx, busy["id"], date(2026, 3, 9), date(2026, 3, 11))
    work_order = await _work_order(ctx, [second["id"]], worker_id=ana["id"])

    result = await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 10), date(2026, 3, 12))
    assert result.success, result.message
    assert "1 worker conflicts" in result.message
    [conflict] = result.data["worker_conflicts"]
    assert conflict["work_order_id"] == busy["id"]
    assert conflict["worker_name"] == "Ana"
    assert (conflict["overlap_start"], conflict["overlap_end"]) == ("2026-03-10", "2026-03-11")

    check = await work_order_service.check_worker_conflicts(
        ctx, [ana["id"]], date(2026, 3, 12), date(2026, 3, 13), exclude_work_order_id=work_order["id"]
    )
    assert check.data == {"has_conflicts": False, "conflicts": []}


async def test_reschedule_needs_a_scheduled_work_order(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]])

    result = await work_order_service.reschedule_work_order(ctx, work_order["id"], date(2026, 3, 9), date(2026, 3, 10))
    assert not result.success
    assert result.status_code == 409
    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["planned_start_date"] is None

    await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 9), date(2026, 3, 10))
    result = await work_order_service.reschedule_work_order(ctx, work_order["id"], date(2026, 3, 16), date(2026, 3, 18))
    assert result.success, result.message
    stored = await ctx.get(Collections.WORK_ORDERS, work_order["id"])
    assert (stored["planned_start_date"], stored["planned_end_date"]) == ("2026-03-16", "2026-03-18")
    assert stored["status"] == "Scheduled"


async def test_reschedule_is_refused_once_started(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    work_order = await _work_order(ctx, [product["id"]])
    await work_order_service.schedule_work_order(ctx, work_order["id"], date(2026, 3, 1), date(2026, 3, 3))
    started = await work_order_service.start_work_order(ctx, work_order["id"])
    assert started.success, started.message

    result = await work_order_service.reschedule_work_order(ctx, work_order["id"], date(2026, 3, 5), date(2026, 3, 6))
    assert not result.success
    assert (await ctx.get(Collections.WORK_ORDERS, work_order["id"]))["planned_start_date"] == "2026-03-01"
