"""Product lifecycle.

Pre-production: Waiting -> MaterialsOrdered -> MaterialsReady. In production
the status is the name of the current step of the active work order, and
completing the last step makes the product Ready.
"""

from enum import Enum
from typing import Dict, Optional, Sequence

from core.state_machine import TransitionTable
from modules.products.schemas import ProductStatus


class ProductEvent(str, Enum):
    MATERIALS_ORDERED = "materials_ordered"
    MATERIALS_READY = "materials_ready"


PRODUCT_TRANSITIONS = TransitionTable(
    "Product",
    {
        (ProductStatus.WAITING, ProductEvent.MATERIALS_ORDERED): ProductStatus.MATERIALS_ORDERED,
        (ProductStatus.WAITING, ProductEvent.MATERIALS_READY): ProductStatus.MATERIALS_READY,
        (ProductStatus.MATERIALS_ORDERED, ProductEvent.MATERIALS_READY): ProductStatus.MATERIALS_READY,
        (ProductStatus.WAITING_FOR_PRODUCTION, ProductEvent.MATERIALS_READY): ProductStatus.MATERIALS_READY,
    },
)

DEFAULT_STEP_MAP: Dict[str, str] = {
    "Cutting": "Edging",
    "Edging": "Drilling",
    "Drilling": "Assembly",
    "Assembly": ProductStatus.READY.value,
}

PRE_PRODUCTION_STATUSES = frozenset(
    {
        ProductStatus.WAITING.value,
        ProductStatus.MATERIALS_ORDERED.value,
        ProductStatus.MATERIALS_READY.value,
        ProductStatus.WAITING_FOR_PRODUCTION.value,
    }
)

COMPLETED_STATUSES = frozenset({ProductStatus.READY.value, ProductStatus.INSTALLED.value})


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def step_map(production_steps: Optional[Sequence[str]] = None) -> Dict[str, str]:
    """Map each completed step to the next status for the given step list."""
    mapping = dict(DEFAULT_STEP_MAP)
    steps = list(production_steps or [])
    for current, following in zip(steps, steps[1:]):
        mapping[current] = following
    if steps:
        mapping[steps[-1]] = ProductStatus.READY.value
    return mapping


def next_status_after_step(step: str, production_steps: Optional[Sequence[str]] = None) -> str:
    return step_map(production_steps).get(step, ProductStatus.READY.value)


def is_in_production(status) -> bool:
    status = _value(status)
    return status not in PRE_PRODUCTION_STATUSES and status not in COMPLETED_STATUSES


def is_completed(status) -> bool:
    return _value(status) in COMPLETED_STATUSES
