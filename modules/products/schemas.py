from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, Field

from core.schemas import Entity
from modules.materials.schemas import ProductMaterial


class ProductStatus(str, Enum):
    WAITING = "Waiting"
    MATERIALS_ORDERED = "MaterialsOrdered"
    MATERIALS_READY = "MaterialsReady"
    WAITING_FOR_PRODUCTION = "WaitingForProduction"
    READY = "Ready"
    INSTALLED = "Installed"


class Product(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("materials",)

    project_id: str
    name: str
    height: float = 0.0
    width: float = 0.0
    depth: float = 0.0
    quantity: int = 1
    # a ProductStatus value or the name of the current production step
    status: str = ProductStatus.WAITING.value
    material_cost: float = 0.0
    notes: str = ""

    materials: List[ProductMaterial] = Field(default_factory=list)


class ProductCreate(BaseModel):
    project_id: str
    name: str = Field(..., min_length=1)
    height: float = Field(0.0, ge=0, description="Height (mm)")
    width: float = Field(0.0, ge=0, description="Width (mm)")
    depth: float = Field(0.0, ge=0, description="Depth (mm)")
    quantity: int = Field(1, gt=0)
    notes: str = ""


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    height: Optional[float] = Field(None, ge=0)
    width: Optional[float] = Field(None, ge=0)
    depth: Optional[float] = Field(None, ge=0)
    quantity: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None
