"""Project status derivation.

The project status is derived from its offers and products and only ever moves
forward. Each derivation is a pure function over a snapshot of the siblings;
an offer whose status is being changed is passed in with its new status
instead of being re-read from the store.
"""

from enum import Enum
from typing import Iterable, Optional

from core.state_machine import TransitionTable
from modules.offers.schemas import OfferStatus
from modules.products import lifecycle as product_lifecycle
from modules.projects.schemas import ProjectStatus


class ProjectEvent(str, Enum):
    OFFER_SENT = "offer_sent"
    OFFER_ACCEPTED = "offer_accepted"
    OFFERS_DECLINED = "offers_declined"
    MATERIALS_ORDERED = "materials_ordered"
    PRODUCTION_STARTED = "production_started"
    PRODUCTS_COMPLETED = "products_completed"


PROJECT_TRANSITIONS = TransitionTable(
    "Project",
    {
        (ProjectStatus.DRAFT, ProjectEvent.OFFER_SENT): ProjectStatus.OFFERED,
        (ProjectStatus.DRAFT, ProjectEvent.OFFER_ACCEPTED): ProjectStatus.APPROVED,
        (ProjectStatus.OFFERED, ProjectEvent.OFFER_ACCEPTED): ProjectStatus.APPROVED,
        (ProjectStatus.CANCELLED, ProjectEvent.OFFER_ACCEPTED): ProjectStatus.APPROVED,
        (ProjectStatus.DRAFT, ProjectEvent.OFFERS_DECLINED): ProjectStatus.CANCELLED,
        (ProjectStatus.OFFERED, ProjectEvent.OFFERS_DECLINED): ProjectStatus.CANCELLED,
        (ProjectStatus.APPROVED, ProjectEvent.MATERIALS_ORDERED): ProjectStatus.IN_PRODUCTION,
        (ProjectStatus.DRAFT, ProjectEvent.PRODUCTION_STARTED): ProjectStatus.IN_PRODUCTION,
        (ProjectStatus.APPROVED, ProjectEvent.PRODUCTION_STARTED): ProjectStatus.IN_PRODUCTION,
        (ProjectStatus.APPROVED, ProjectEvent.PRODUCTS_COMPLETED): ProjectStatus.COMPLETED,
        (ProjectStatus.IN_PRODUCTION, ProjectEvent.PRODUCTS_COMPLETED): ProjectStatus.COMPLETED,
    },
)

DECLINED_OFFER_STATUSES = frozenset({OfferStatus.REJECTED, OfferStatus.EXPIRED})

# product-driven sync leaves these alone
SYNC_SKIPPED_STATUSES = frozenset({ProjectStatus.DRAFT, ProjectStatus.OFFERED, ProjectStatus.CANCELLED})


def all_offers_declined(offers: Iterable, offer_id: str, new_status: OfferStatus) -> bool:
    """True when every offer of the project is Rejected/Expired once ``offer_id`` takes ``new_status``."""
    statuses = {offer.id: OfferStatus(offer.status) for offer in offers}
    statuses[offer_id] = OfferStatus(new_status)
    return all(status in DECLINED_OFFER_STATUSES for status in statuses.values())


def status_after_offer_change(
    current: ProjectStatus, offers: Iterable, offer_id: str, new_status: OfferStatus
) -> ProjectStatus:
    new_status = OfferStatus(new_status)
    if new_status == OfferStatus.SENT:
        return PROJECT_TRANSITIONS.advance(current, ProjectEvent.OFFER_SENT)
    if new_status == OfferStatus.ACCEPTED:
        return PROJECT_TRANSITIONS.advance(current, ProjectEvent.OFFER_ACCEPTED)
    if new_status in DECLINED_OFFER_STATUSES and all_offers_declined(offers, offer_id, new_status):
        return PROJECT_TRANSITIONS.advance(current, ProjectEvent.OFFERS_DECLINED)
    return current


def status_from_products(current: ProjectStatus, product_statuses: Iterable[str]) -> Optional[ProjectStatus]:
    """Return the product-driven status, or ``None`` when nothing changes."""
    current = ProjectStatus(current)
    if current in SYNC_SKIPPED_STATUSES:
        return None
    statuses = list(product_statuses)
    if not statuses:
        return None

    if all(product_lifecycle.is_completed(s) for s in statuses):
        target = PROJECT_TRANSITIONS.advance(current, ProjectEvent.PRODUCTS_COMPLETED)
    elif any(product_lifecycle.is_in_production(s) for s in statuses):
        target = PROJECT_TRANSITIONS.advance(current, ProjectEvent.PRODUCTION_STARTED)
    else:
        target = current
    return None if target == current else ProjectStatus(target)
