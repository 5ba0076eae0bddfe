from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, Field

from core.schemas import Entity


class OfferStatus(str, Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    EXPIRED = "Expired"
    REVISED = "Revised"


class MarginType(str, Enum):
    FIXED = "Fixed"
    PERCENTAGE = "Percentage"


class OfferExtra(Entity):
    offer_product_id: str
    name: str
    quantity: float = 1.0
    unit: str = ""
    unit_price: float = 0.0
    total: float = 0.0


class OfferProduct(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("extras",)

    offer_id: str
    product_id: str
    product_name: str = ""
    quantity: int = 1
    included: bool = True
    material_cost: float = 0.0
    margin: float = 0.0
    margin_type: MarginType = MarginType.PERCENTAGE
    selling_price: float = 0.0
    total_price: float = 0.0

    extras: List[OfferExtra] = Field(default_factory=list)


class Offer(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("products", "client_name")

    project_id: str
    offer_number: str
    created_date: str
    valid_until: Optional[str] = None
    status: OfferStatus = OfferStatus.DRAFT
    transport_cost: float = 0.0
    subtotal: float = 0.0
    total: float = 0.0
    notes: str = ""
    accepted_date: Optional[str] = None
    client_name: Optional[str] = None

    products: List[OfferProduct] = Field(default_factory=list)


class OfferExtraIn(BaseModel):
    name: str = Field(..., min_length=1)
    quantity: float = Field(1.0, gt=0)
    unit: str = ""
    unit_price: float = Field(0.0, ge=0)


class OfferProductIn(BaseModel):
    product_id: str
    quantity: int = Field(1, gt=0)
    included: bool = True
    margin: float = Field(0.0, ge=0)
    margin_type: MarginType = MarginType.PERCENTAGE
    extras: List[OfferExtraIn] = Field(default_factory=list)


class OfferCreate(BaseModel):
    project_id: str
    valid_until: Optional[str] = None
    transport_cost: float = Field(0.0, ge=0)
    notes: str = ""
    products: List[OfferProductIn] = Field(default_factory=list)


class OfferStatusUpdate(BaseModel):
    status: OfferStatus
