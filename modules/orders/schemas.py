from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from core.schemas import Entity


class OrderStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    # display label only, derived from item statuses
    PARTIALLY_RECEIVED = "PartiallyReceived"
    RECEIVED = "Received"


class OrderItemStatus(str, Enum):
    PENDING = "Pending"
    ORDERED = "Ordered"
    RECEIVED = "Received"


class MaterialDisposal(str, Enum):
    """What happens to the in-flight materials of a deleted order."""

    RESET = "reset"
    RECEIVED = "received"


class OrderItem(Entity):
    order_id: str
    product_material_ids: List[str] = Field(default_factory=list)
    product_id: str = ""
    product_name: str = ""
    project_id: str = ""
    material_name: str
    quantity: float = 0.0
    unit: str = ""
    expected_price: float = 0.0
    actual_price: Optional[float] = None
    received_quantity: float = 0.0
    status: OrderItemStatus = OrderItemStatus.PENDING
    received_date: Optional[str] = None


class Order(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("items",)

    supplier_id: str = ""
    supplier_name: str = ""
    order_number: str
    order_date: str
    expected_delivery: Optional[str] = None
    status: OrderStatus = OrderStatus.DRAFT
    total_amount: float = 0.0
    notes: str = ""
    sent_date: Optional[str] = None
    received_date: Optional[str] = None

    items: List[OrderItem] = Field(default_factory=list)


class OrderCreate(BaseModel):
    supplier_id: str = ""
    # used when the supplier is not registered
    supplier_name: str = ""
    material_ids: List[str] = Field(default_factory=list)
    # expected price per material id, defaults to the material's unit price
    expected_prices: Dict[str, float] = Field(default_factory=dict)
    expected_delivery: Optional[str] = None
    notes: str = ""


class OrderStatusChange(BaseModel):
    status: OrderStatus
    confirm: bool = False


class ReceiveItems(BaseModel):
    item_ids: List[str] = Field(default_factory=list)


class QuantityEdit(BaseModel):
    quantities: Dict[str, float] = Field(default_factory=dict)


class DeleteItems(BaseModel):
    item_ids: List[str] = Field(default_factory=list)
    cascade_empty_order: bool = False
