from enum import Enum
from typing import ClassVar, List, Optional, Tuple

from pydantic import BaseModel, Field

from core.schemas import Entity
from modules.offers.schemas import Offer
from modules.products.schemas import Product


class ProjectStatus(str, Enum):
    DRAFT = "Draft"
    OFFERED = "Offered"
    APPROVED = "Approved"
    IN_PRODUCTION = "InProduction"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


class ProductionMode(str, Enum):
    PRE_CUT = "PreCut"
    IN_HOUSE = "InHouse"


class Project(Entity):
    child_fields: ClassVar[Tuple[str, ...]] = ("products", "offers")

    client_name: str
    client_phone: str = ""
    client_email: str = ""
    address: str = ""
    notes: str = ""
    status: ProjectStatus = ProjectStatus.DRAFT
    production_mode: ProductionMode = ProductionMode.IN_HOUSE
    created_date: Optional[str] = None
    deadline: Optional[str] = None

    products: List[Product] = Field(default_factory=list)
    offers: List[Offer] = Field(default_factory=list)


class ProjectCreate(BaseModel):
    client_name: str = Field(..., min_length=1)
    client_phone: str = ""
    client_email: str = ""
    address: str = ""
    notes: str = ""
    production_mode: ProductionMode = ProductionMode.IN_HOUSE
    deadline: Optional[str] = None


class ProjectUpdate(BaseModel):
    client_name: Optional[str] = None
    client_phone: Optional[str] = None
    client_email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    production_mode: Optional[ProductionMode] = None
    deadline: Optional[str] = None
