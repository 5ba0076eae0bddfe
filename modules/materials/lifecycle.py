"""Material lifecycle: NotOrdered -> Ordered -> Received, with OnStock / InUse / Installed branches."""

from enum import Enum
from typing import Iterable

from core.state_machine import TransitionTable
from modules.materials.schemas import MaterialStatus


class MaterialEvent(str, Enum):
    ORDER = "order"
    RECEIVE = "receive"
    GIVE_BACK = "give_back"
    STOCK = "stock"
    USE = "use"
    INSTALL = "install"


MATERIAL_TRANSITIONS = TransitionTable(
    "Material",
    {
        (MaterialStatus.NOT_ORDERED, MaterialEvent.ORDER): MaterialStatus.ORDERED,
        (MaterialStatus.ORDERED, MaterialEvent.ORDER): MaterialStatus.ORDERED,
        (MaterialStatus.ORDERED, MaterialEvent.RECEIVE): MaterialStatus.RECEIVED,
        # sourced outside the formal order flow
        (MaterialStatus.NOT_ORDERED, MaterialEvent.RECEIVE): MaterialStatus.RECEIVED,
        (MaterialStatus.RECEIVED, MaterialEvent.RECEIVE): MaterialStatus.RECEIVED,
        (MaterialStatus.ORDERED, MaterialEvent.GIVE_BACK): MaterialStatus.NOT_ORDERED,
        (MaterialStatus.NOT_ORDERED, MaterialEvent.GIVE_BACK): MaterialStatus.NOT_ORDERED,
        (MaterialStatus.RECEIVED, MaterialEvent.STOCK): MaterialStatus.ON_STOCK,
        (MaterialStatus.NOT_ORDERED, MaterialEvent.STOCK): MaterialStatus.ON_STOCK,
        (MaterialStatus.RECEIVED, MaterialEvent.USE): MaterialStatus.IN_USE,
        (MaterialStatus.ON_STOCK, MaterialEvent.USE): MaterialStatus.IN_USE,
        (MaterialStatus.RECEIVED, MaterialEvent.INSTALL): MaterialStatus.INSTALLED,
        (MaterialStatus.IN_USE, MaterialEvent.INSTALL): MaterialStatus.INSTALLED,
    },
)

# A product is "materials ready" once every material is in one of these.
TERMINAL_READY_STATUSES = frozenset({MaterialStatus.RECEIVED, MaterialStatus.IN_USE, MaterialStatus.INSTALLED})

# Essential materials must be in one of these before production starts.
ESSENTIAL_READY_STATUSES = frozenset({MaterialStatus.RECEIVED, MaterialStatus.ON_STOCK})

# Excluded from "unordered materials".
PAST_ORDERING_STATUSES = frozenset(
    {MaterialStatus.RECEIVED, MaterialStatus.ON_STOCK, MaterialStatus.IN_USE, MaterialStatus.INSTALLED}
)


def all_terminal_ready(statuses: Iterable[MaterialStatus]) -> bool:
    statuses = list(statuses)
    return bool(statuses) and all(MaterialStatus(s) in TERMINAL_READY_STATUSES for s in statuses)


def is_essential_ready(status: MaterialStatus) -> bool:
    return MaterialStatus(status) in ESSENTIAL_READY_STATUSES


def is_orderable(status: MaterialStatus, order_id: str) -> bool:
    return MaterialStatus(status) not in PAST_ORDERING_STATUSES and not order_id
