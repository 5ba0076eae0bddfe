"""Work order lifecycle: Waiting -> Scheduled (optional) -> InProgress -> Completed."""

from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from core.state_machine import TransitionTable
from modules.materials import lifecycle as material_lifecycle
from modules.work_orders.schemas import WorkOrderItemStatus, WorkOrderStatus


class WorkOrderEvent(str, Enum):
    SCHEDULE = "schedule"
    RESCHEDULE = "reschedule"
    UNSCHEDULE = "unschedule"
    START = "start"
    COMPLETE = "complete"


WORK_ORDER_TRANSITIONS = TransitionTable(
    "Work order",
    {
        (WorkOrderStatus.WAITING, WorkOrderEvent.SCHEDULE): WorkOrderStatus.SCHEDULED,
        (WorkOrderStatus.SCHEDULED, WorkOrderEvent.SCHEDULE): WorkOrderStatus.SCHEDULED,
        (WorkOrderStatus.SCHEDULED, WorkOrderEvent.RESCHEDULE): WorkOrderStatus.SCHEDULED,
        (WorkOrderStatus.SCHEDULED, WorkOrderEvent.UNSCHEDULE): WorkOrderStatus.WAITING,
        (WorkOrderStatus.WAITING, WorkOrderEvent.UNSCHEDULE): WorkOrderStatus.WAITING,
        (WorkOrderStatus.COMPLETED, WorkOrderEvent.UNSCHEDULE): WorkOrderStatus.COMPLETED,
        (WorkOrderStatus.WAITING, WorkOrderEvent.START): WorkOrderStatus.IN_PROGRESS,
        (WorkOrderStatus.SCHEDULED, WorkOrderEvent.START): WorkOrderStatus.IN_PROGRESS,
        (WorkOrderStatus.IN_PROGRESS, WorkOrderEvent.COMPLETE): WorkOrderStatus.COMPLETED,
    },
)

ITEM_TRANSITIONS = TransitionTable(
    "Work order item",
    {
        (WorkOrderItemStatus.WAITING, WorkOrderEvent.START): WorkOrderItemStatus.IN_PROGRESS,
        (WorkOrderItemStatus.IN_PROGRESS, WorkOrderEvent.COMPLETE): WorkOrderItemStatus.COMPLETED,
    },
)


def assigned_workers(processes: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Every worker and helper on the item's steps, in assignment order, without repeats."""
    seen = set()
    workers = []
    for process in processes or []:
        candidates = []
        if process.get("worker_id"):
            candidates.append((process["worker_id"], process.get("worker_name", ""), "Worker"))
        for helper in process.get("helpers") or []:
            candidates.append((helper["worker_id"], helper.get("worker_name", ""), "Helper"))
        for worker_id, name, role in candidates:
            if worker_id not in seen:
                seen.add(worker_id)
                workers.append({"worker_id": worker_id, "worker_name": name, "role": role})
    return workers


def missing_essential_materials(materials: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [
        m
        for m in materials
        if m.get("is_essential") and not material_lifecycle.is_essential_ready(m.get("status", "NotOrdered"))
    ]


def furthest_step(steps: List[str], completed: Iterable[str]) -> Optional[str]:
    done = set(completed)
    furthest = None
    for step in steps:
        if step in done:
            furthest = step
    return furthest


def overlap(start: date, end: date, other_start: date, other_end: date) -> Optional[Tuple[date, date]]:
    """Shared days of two inclusive date ranges, or ``None``."""
    if start > other_end or end < other_start:
        return None
    return max(start, other_start), min(end, other_end)
