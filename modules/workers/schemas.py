from typing import Optional

from pydantic import BaseModel, Field

from core.schemas import Entity


class Worker(Entity):
    name: str
    role: str = ""
    phone: str = ""
    daily_rate: float = 0.0
    status: str = "Active"


class WorkerCreate(BaseModel):
    name: str = Field(..., min_length=1)
    role: str = ""
    phone: str = ""
    daily_rate: float = Field(0.0, ge=0)
    status: str = "Active"


class WorkerUpdate(BaseModel):
    name: Optional[str] = None
    role: Optional[str] = None
    phone: Optional[str] = None
    daily_rate: Optional[float] = Field(None, ge=0)
    status: Optional[str] = None
