from typing import Optional

from pydantic import BaseModel, Field

from core.schemas import Entity


class Supplier(Entity):
    name: str
    contact_person: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    categories: str = ""


class SupplierCreate(BaseModel):
    name: str = Field(..., min_length=1)
    contact_person: str = ""
    phone: str = ""
    email: str = ""
    address: str = ""
    categories: str = ""


class SupplierUpdate(BaseModel):
    name: Optional[str] = None
    contact_person: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    categories: Optional[str] = None
