from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, Field

from core.schemas import Entity


class MaterialStatus(str, Enum):
    NOT_ORDERED = "NotOrdered"
    ORDERED = "Ordered"
    RECEIVED = "Received"
    ON_STOCK = "OnStock"
    IN_USE = "InUse"
    INSTALLED = "Installed"


class GlassItem(Entity):
    product_material_id: str
    order_id: str = ""
    qty: int = 1
    width: float = 0.0
    height: float = 0.0
    area_m2: float = 0.0
    edge_processing: bool = False
    note: str = ""
    status: MaterialStatus = MaterialStatus.NOT_ORDERED


class AluDoorItem(Entity):
    product_material_id: str
    order_id: str = ""
    qty: int = 1
    width: float = 0.0
    height: float = 0.0
    frame_type: str = ""
    glass_type: str = ""
    frame_color: str = ""
    hinge_color: str = ""
    hinge_type: str = ""
    hinge_side: str = ""
    integrated_handle: bool = False
    area_m2: float = 0.0
    unit_price: float = 0.0
    total_price: float = 0.0
    note: str = ""
    status: MaterialStatus = MaterialStatus.NOT_ORDERED


class ProductMaterial(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("glass_items", "alu_door_items")

    product_id: str
    material_id: str = ""
    material_name: str
    quantity: float = 0.0
    unit: str = ""
    unit_price: float = 0.0
    total_price: float = 0.0
    status: MaterialStatus = MaterialStatus.NOT_ORDERED
    supplier: str = ""
    order_id: str = ""
    ordered_quantity: Optional[float] = None
    is_essential: bool = False
    received_date: Optional[str] = None

    glass_items: List[GlassItem] = Field(default_factory=list)
    alu_door_items: List[AluDoorItem] = Field(default_factory=list)


class MaterialCreate(BaseModel):
    product_id: str
    material_id: str = ""
    material_name: str = Field(..., min_length=1)
    quantity: float = Field(0.0, ge=0)
    unit: str = ""
    unit_price: float = Field(0.0, ge=0)
    supplier: str = ""
    is_essential: bool = False


class MaterialUpdate(BaseModel):
    material_name: Optional[str] = None
    quantity: Optional[float] = Field(None, ge=0)
    unit: Optional[str] = None
    unit_price: Optional[float] = Field(None, ge=0)
    supplier: Optional[str] = None
    is_essential: Optional[bool] = None


class GlassPaneIn(BaseModel):
    qty: int = Field(1, gt=0)
    width: float = Field(..., gt=0, description="Width (mm)")
    height: float = Field(..., gt=0, description="Height (mm)")
    edge_processing: bool = False
    note: str = ""


class GlassMaterialCreate(BaseModel):
    product_id: str
    material_id: str = ""
    material_name: str = Field(..., min_length=1)
    supplier: str = ""
    price_per_m2: float = Field(0.0, ge=0)
    is_essential: bool = False
    items: List[GlassPaneIn] = Field(default_factory=list)


class AluDoorIn(BaseModel):
    qty: int = Field(1, gt=0)
    width: float = Field(..., gt=0, description="Width (mm)")
    height: float = Field(..., gt=0, description="Height (mm)")
    frame_type: str = ""
    glass_type: str = ""
    frame_color: str = ""
    hinge_color: str = ""
    hinge_type: str = ""
    hinge_side: str = ""
    integrated_handle: bool = False
    note: str = ""


class AluDoorMaterialCreate(BaseModel):
    product_id: str
    material_id: str = ""
    material_name: str = Field(..., min_length=1)
    supplier: str = ""
    price_per_m2: float = Field(200.0, ge=0)
    is_essential: bool = False
    items: List[AluDoorIn] = Field(default_factory=list)
