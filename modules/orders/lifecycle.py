"""Order lifecycle: Draft -> Sent -> Received, with a confirmed revert to Draft."""

from enum import Enum
from typing import Iterable, List, Tuple

from core.state_machine import TransitionTable
from modules.orders.schemas import OrderItemStatus, OrderStatus


class OrderEvent(str, Enum):
    SEND = "send"
    RECEIVE = "receive"
    REVERT = "revert"


ORDER_TRANSITIONS = TransitionTable(
    "Order",
    {
        (OrderStatus.DRAFT, OrderEvent.SEND): OrderStatus.SENT,
        (OrderStatus.SENT, OrderEvent.SEND): OrderStatus.SENT,
        (OrderStatus.SENT, OrderEvent.RECEIVE): OrderStatus.RECEIVED,
        (OrderStatus.RECEIVED, OrderEvent.RECEIVE): OrderStatus.RECEIVED,
        (OrderStatus.SENT, OrderEvent.REVERT): OrderStatus.DRAFT,
        (OrderStatus.RECEIVED, OrderEvent.REVERT): OrderStatus.DRAFT,
    },
)

ITEM_TRANSITIONS = TransitionTable(
    "Order item",
    {
        (OrderItemStatus.PENDING, OrderEvent.SEND): OrderItemStatus.ORDERED,
        (OrderItemStatus.ORDERED, OrderEvent.SEND): OrderItemStatus.ORDERED,
        (OrderItemStatus.ORDERED, OrderEvent.RECEIVE): OrderItemStatus.RECEIVED,
        (OrderItemStatus.RECEIVED, OrderEvent.RECEIVE): OrderItemStatus.RECEIVED,
        (OrderItemStatus.ORDERED, OrderEvent.REVERT): OrderItemStatus.PENDING,
    },
)


def received_counts(item_statuses: Iterable[str]) -> Tuple[int, int]:
    statuses: List[str] = list(item_statuses)
    received = sum(1 for s in statuses if OrderItemStatus(s) == OrderItemStatus.RECEIVED)
    return received, len(statuses)


def display_status(status: OrderStatus, item_statuses: Iterable[str]) -> OrderStatus:
    """Status shown to callers; ``PartiallyReceived`` when some but not all items arrived."""
    status = OrderStatus(status)
    received, total = received_counts(item_statuses)
    if status == OrderStatus.SENT and 0 < received < total:
        return OrderStatus.PARTIALLY_RECEIVED
    return status


def all_received(item_statuses: Iterable[str]) -> bool:
    received, total = received_counts(item_statuses)
    return total > 0 and received == total
