from typing import Optional

from pydantic import BaseModel


class Availability(BaseModel):
    allowed: bool
    reason: Optional[str] = None
    status: Optional[str] = None
