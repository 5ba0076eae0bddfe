from datetime import date
from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from core.schemas import Entity


class WorkOrderStatus(str, Enum):
    WAITING = "Waiting"
    SCHEDULED = "Scheduled"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class WorkOrderItemStatus(str, Enum):
    WAITING = "Waiting"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"


class ProcessStatus(str, Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"


class ProductDisposal(str, Enum):
    """Product status applied when a work order is deleted."""

    COMPLETED = "completed"
    WAITING = "waiting"


class Helper(BaseModel):
    worker_id: str
    worker_name: str = ""


class ProcessAssignment(BaseModel):
    step: str
    worker_id: Optional[str] = None
    worker_name: str = ""
    helpers: List[Helper] = Field(default_factory=list)
    status: ProcessStatus = ProcessStatus.PENDING
    completed_at: Optional[str] = None


class WorkOrderItem(Entity):
    work_order_id: str
    product_id: str
    product_name: str = ""
    project_id: str = ""
    quantity: int = 1
    status: WorkOrderItemStatus = WorkOrderItemStatus.WAITING
    processes: List[ProcessAssignment] = Field(default_factory=list)
    last_completed_step: Optional[str] = None
    product_value: float = 0.0
    material_cost: float = 0.0
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class WorkOrder(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("items",)

    work_order_number: str
    created_date: str
    production_steps: List[str] = Field(default_factory=list)
    status: WorkOrderStatus = WorkOrderStatus.WAITING
    due_date: Optional[str] = None
    planned_start_date: Optional[str] = None
    planned_end_date: Optional[str] = None
    is_scheduled: bool = False
    scheduled_at: Optional[str] = None
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    notes: str = ""

    items: List[WorkOrderItem] = Field(default_factory=list)


class ProcessAssignmentIn(BaseModel):
    step: str
    worker_id: Optional[str] = None
    helpers: List[str] = Field(default_factory=list)


class WorkOrderItemIn(BaseModel):
    product_id: str
    quantity: int = Field(1, gt=0)
    product_value: float = Field(0.0, ge=0)
    processes: List[ProcessAssignmentIn] = Field(default_factory=list)


class WorkOrderCreate(BaseModel):
    production_steps: Optional[List[str]] = None
    due_date: Optional[str] = None
    notes: str = ""
    items: List[WorkOrderItemIn] = Field(default_factory=list)


class ScheduleIn(BaseModel):
    planned_start_date: date
    planned_end_date: date

    @model_validator(mode="after")
    def check_range(self):
        if self.planned_end_date < self.planned_start_date:
            raise ValueError("planned_end_date must not be before planned_start_date")
        return self


class CompleteStepIn(BaseModel):
    step: str = Field(..., min_length=1)


class WorkerConflictQuery(BaseModel):
    worker_ids: List[str] = Field(default_factory=list)
    start_date: date
    end_date: date
    exclude_work_order_id: Optional[str] = None

    @model_validator(mode="after")
    def check_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self
