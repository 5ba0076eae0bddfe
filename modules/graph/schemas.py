from typing import List

from pydantic import BaseModel, Field

from modules.offers.schemas import Offer
from modules.orders.schemas import Order
from modules.products.schemas import Product
from modules.projects.schemas import Project
from modules.suppliers.schemas import Supplier
from modules.tasks.schemas import Task
from modules.work_logs.schemas import WorkLog
from modules.work_orders.schemas import WorkOrder
from modules.workers.schemas import Worker


class Graph(BaseModel):
    """Denormalized snapshot of one tenant's records with children attached to their parents."""

    projects: List[Project] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    offers: List[Offer] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)
    work_orders: List[WorkOrder] = Field(default_factory=list)
    suppliers: List[Supplier] = Field(default_factory=list)
    workers: List[Worker] = Field(default_factory=list)
    work_logs: List[WorkLog] = Field(default_factory=list)
    tasks: List[Task] = Field(default_factory=list)

    @classmethod
    def empty(cls) -> "Graph":
        return cls()

    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in type(self).model_fields)
