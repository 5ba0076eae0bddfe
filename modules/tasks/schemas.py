from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from core.schemas import Entity


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


class TaskStatus(str, Enum):
    NEW = "New"
    IN_PROGRESS = "InProgress"
    DONE = "Done"
    CANCELLED = "Cancelled"


class Task(Entity):
    title: str
    description: str = ""
    project_id: Optional[str] = None
    due_date: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.NEW
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    auto_generated: bool = False
    related_work_order: Optional[str] = None
    related_product: Optional[str] = None
    related_material: Optional[str] = None


class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    project_id: Optional[str] = None
    due_date: Optional[str] = None
    priority: TaskPriority = TaskPriority.MEDIUM


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
