from typing import Optional

from pydantic import BaseModel, Field

from core.schemas import Entity


class WorkLog(Entity):
    date: str
    worker_id: str
    worker_name: str = ""
    daily_rate: float = 0.0
    hours_worked: float = 8.0
    work_order_id: str = ""
    work_order_item_id: str
    product_id: str = ""
    process_name: Optional[str] = None
    notes: str = ""
    created_at: Optional[str] = None


class WorkLogCreate(BaseModel):
    worker_id: str
    work_order_item_id: str
    date: Optional[str] = Field(None, description="YYYY-MM-DD, defaults to today")
    daily_rate: Optional[float] = Field(None, ge=0)
    hours_worked: float = Field(8.0, gt=0, le=24)
    process_name: Optional[str] = None
    notes: str = ""
