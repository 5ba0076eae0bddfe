"""Offer lifecycle. Events are named after the status they lead to."""

from typing import Iterable

from core.state_machine import TransitionTable
from modules.offers.schemas import MarginType, OfferStatus

_OPEN = (OfferStatus.DRAFT, OfferStatus.SENT)

OFFER_TRANSITIONS = TransitionTable(
    "Offer",
    {
        (OfferStatus.DRAFT, OfferStatus.SENT): OfferStatus.SENT,
        **{(s, OfferStatus.ACCEPTED): OfferStatus.ACCEPTED for s in _OPEN},
        **{(s, OfferStatus.REJECTED): OfferStatus.REJECTED for s in _OPEN},
        **{(s, OfferStatus.EXPIRED): OfferStatus.EXPIRED for s in _OPEN},
        **{(s, OfferStatus.REVISED): OfferStatus.REVISED for s in _OPEN},
        (OfferStatus.EXPIRED, OfferStatus.SENT): OfferStatus.SENT,
    },
)

# still open when a sibling offer is accepted; superseded by it
SUPERSEDED_ON_ACCEPT = frozenset(_OPEN)


def margin_amount(material_cost: float, margin: float, margin_type: MarginType) -> float:
    if MarginType(margin_type) == MarginType.PERCENTAGE:
        return material_cost * margin / 100.0
    return margin


def selling_price(material_cost: float, margin: float, margin_type: MarginType, extras_total: float) -> float:
    """Unit selling price of an offered product."""
    return material_cost + margin_amount(material_cost, margin, margin_type) + extras_total


def offer_subtotal(products: Iterable) -> float:
    return sum(p.total_price for p in products if p.included)
