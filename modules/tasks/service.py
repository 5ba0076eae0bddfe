import logging
from typing import Any, Dict, Optional

from core.collections import Collections
from core.identifiers import new_id
from core.results import OperationResult, operation
from core.store import where
from modules.tasks.schemas import Task, TaskCreate, TaskPriority, TaskStatus

logger = logging.getLogger(__name__)


async def add_task(ctx, **fields) -> Dict[str, Any]:
    task = Task(id=new_id(), created_at=ctx.timestamp(), **fields)
    return await ctx.add(Collections.TASKS, task.to_record())


OPEN_TASK_STATUSES = (TaskStatus.NEW.value, TaskStatus.IN_PROGRESS.value)


async def open_procurement_task(ctx, work_order_id: str, material_id: str) -> Optional[Dict[str, Any]]:
    tasks = await ctx.query(
        Collections.TASKS,
        where("auto_generated", "==", True),
        where("related_work_order", "==", work_order_id),
        where("related_material", "==", material_id),
        where("status", "in", OPEN_TASK_STATUSES),
    )
    return tasks[0] if tasks else None


async def add_procurement_task(
    ctx, work_order: Dict[str, Any], item: Dict[str, Any], material: Dict[str, Any]
) -> Optional[Dict[str, Any]]:
    """Urgent task to get an essential material in before the planned start.

    Returns ``None`` when an open task for the same work order and material
    already exists.
    """
    if await open_procurement_task(ctx, work_order["id"], material.get("id")):
        return None
    return await add_task(
        ctx,
        title=f"Order: {material.get('material_name')}",
        description=(
            f"Essential material for {item.get('product_name') or item.get('product_id')} "
            f"(work order {work_order.get('work_order_number') or work_order['id']}) must be received before production starts."
        ),
        project_id=item.get("project_id") or None,
        due_date=work_order.get("planned_start_date"),
        priority=TaskPriority.URGENT,
        auto_generated=True,
        related_work_order=work_order["id"],
        related_product=item.get("product_id"),
        related_material=material.get("id"),
    )


@operation("Failed to create task")
async def create_task(ctx, data: TaskCreate) -> OperationResult:
    record = await add_task(ctx, **data.model_dump())
    return OperationResult.ok("Task created", record, status_code=201)


@operation("Failed to load tasks")
async def list_tasks(ctx, status: Optional[TaskStatus] = None) -> OperationResult:
    predicates = [where("status", "==", TaskStatus(status).value)] if status else []
    tasks = await ctx.query(Collections.TASKS, *predicates)
    return OperationResult.ok(f"{len(tasks)} tasks", tasks)


@operation("Failed to update task status")
async def update_task_status(ctx, task_id: str, status: TaskStatus) -> OperationResult:
    await ctx.require(Collections.TASKS, task_id, "Task not found")
    status = TaskStatus(status)
    changes = {"status": status.value, "completed_at": ctx.timestamp() if status == TaskStatus.DONE else None}
    record = await ctx.update(Collections.TASKS, task_id, changes)
    return OperationResult.ok("Task status updated", record)


@operation("Failed to delete task")
async def delete_task(ctx, task_id: str) -> OperationResult:
    await ctx.require(Collections.TASKS, task_id, "Task not found")
    await ctx.delete(Collections.TASKS, task_id)
    return OperationResult.ok("Task deleted")
