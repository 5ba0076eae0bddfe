import logging
from typing import Any, Dict, Iterable

from core.collections import Collections
from core.errors import ForbiddenOperationException
from core.identifiers import new_id
from core.results import OperationResult, operation
from core.store import where
from modules.work_logs.schemas import WorkLog, WorkLogCreate

logger = logging.getLogger(__name__)


def labor_breakdown(logs: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Total labor cost of the logs with a per-worker days/cost breakdown."""
    workers: Dict[str, Dict[str, Any]] = {}
    total_cost = 0.0
    total_days = 0
    for log in logs:
        rate = log.get("daily_rate") or 0.0
        entry = workers.setdefault(
            log["worker_id"],
            {"worker_id": log["worker_id"], "worker_name": log.get("worker_name", ""), "days": 0, "cost": 0.0},
        )
        entry["days"] += 1
        entry["cost"] += rate
        total_cost += rate
        total_days += 1
    return {"total_cost": total_cost, "total_days": total_days, "workers": list(workers.values())}


async def work_log_exists(ctx, worker_id: str, item_id: str, day: str) -> bool:
    found = await ctx.query(
        Collections.WORK_LOGS,
        where("worker_id", "==", worker_id),
        where("work_order_item_id", "==", item_id),
        where("date", "==", day),
    )
    return bool(found)


@operation("Failed to create work log")
async def create_work_log(ctx, data: WorkLogCreate) -> OperationResult:
    item = await ctx.require(Collections.WORK_ORDER_ITEMS, data.work_order_item_id, "Work order item not found")
    worker = await ctx.require(Collections.WORKERS, data.worker_id, "Worker not found")
    day = data.date or ctx.today().isoformat()
    if await work_log_exists(ctx, data.worker_id, data.work_order_item_id, day):
        raise ForbiddenOperationException(f"{worker.get('name')} already has a work log for {day}")

    log = WorkLog(
        id=new_id(),
        date=day,
        worker_id=data.worker_id,
        worker_name=worker.get("name", ""),
        daily_rate=data.daily_rate if data.daily_rate is not None else worker.get("daily_rate", 0.0),
        hours_worked=data.hours_worked,
        work_order_id=item.get("work_order_id", ""),
        work_order_item_id=data.work_order_item_id,
        product_id=item.get("product_id", ""),
        process_name=data.process_name,
        notes=data.notes,
        created_at=ctx.timestamp(),
    )
    record = await ctx.add(Collections.WORK_LOGS, log.to_record())
    return OperationResult.ok("Work log recorded", record, status_code=201)


@operation("Failed to load work logs")
async def list_work_logs_for_item(ctx, item_id: str) -> OperationResult:
    logs = await ctx.query(Collections.WORK_LOGS, where("work_order_item_id", "==", item_id))
    return OperationResult.ok(f"{len(logs)} work logs", logs)


@operation("Failed to load work logs")
async def list_work_logs_for_work_order(ctx, work_order_id: str) -> OperationResult:
    logs = await ctx.query(Collections.WORK_LOGS, where("work_order_id", "==", work_order_id))
    return OperationResult.ok(f"{len(logs)} work logs", logs)


@operation("Failed to calculate labor cost")
async def calculate_item_labor_cost(ctx, item_id: str) -> OperationResult:
    logs = await ctx.query(Collections.WORK_LOGS, where("work_order_item_id", "==", item_id))
    return OperationResult.ok("Labor cost calculated", labor_breakdown(logs))


@operation("Failed to delete work log")
async def delete_work_log(ctx, work_log_id: str) -> OperationResult:
    await ctx.require(Collections.WORK_LOGS, work_log_id, "Work log not found")
    await ctx.delete(Collections.WORK_LOGS, work_log_id)
    return OperationResult.ok("Work log deleted")
