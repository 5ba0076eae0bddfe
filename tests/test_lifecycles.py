"""Transition tables and the pure status derivations."""

import pytest

from core.errors import InvalidTransitionException
from modules.materials import lifecycle as material_lifecycle
from modules.materials.lifecycle import MATERIAL_TRANSITIONS, MaterialEvent
from modules.materials.schemas import MaterialStatus
from modules.offers.lifecycle import OFFER_TRANSITIONS, margin_amount, selling_price
from modules.offers.schemas import MarginType, Offer, OfferStatus
from modules.orders import lifecycle as order_lifecycle
from modules.orders.lifecycle import ITEM_TRANSITIONS, ORDER_TRANSITIONS, OrderEvent
from modules.orders.schemas import OrderStatus
from modules.products import lifecycle as product_lifecycle
from modules.projects import lifecycle as project_lifecycle
from modules.projects.schemas import ProjectStatus
from modules.work_orders import lifecycle as work_order_lifecycle


def _offer(offer_id, status):
    return Offer(id=offer_id, project_id="p1", offer_number="OF-1", created_date="2026-03-01", status=status)


def test_transition_lookup_accepts_stored_strings():
    assert MATERIAL_TRANSITIONS.apply("NotOrdered", MaterialEvent.ORDER) == MaterialStatus.ORDERED
    assert MATERIAL_TRANSITIONS.can(MaterialStatus.ORDERED, "receive")


def test_illegal_transition_raises_and_advance_keeps_state():
    with pytest.raises(InvalidTransitionException):
        MATERIAL_TRANSITIONS.apply("InUse", MaterialEvent.ORDER)
    assert MATERIAL_TRANSITIONS.advance("InUse", MaterialEvent.ORDER) == "InUse"


def test_order_forward_moves_from_sent():
    assert sorted(ORDER_TRANSITIONS.events_from(OrderStatus.SENT)) == ["receive", "revert", "send"]
    with pytest.raises(InvalidTransitionException):
        ORDER_TRANSITIONS.apply(OrderStatus.DRAFT, OrderEvent.RECEIVE)


def test_received_item_cannot_be_reverted():
    assert not ITEM_TRANSITIONS.can("Received", OrderEvent.REVERT)


def test_partially_received_is_display_only():
    assert order_lifecycle.display_status("Sent", ["Received", "Ordered"]) == OrderStatus.PARTIALLY_RECEIVED
    assert order_lifecycle.display_status("Sent", ["Ordered", "Ordered"]) == OrderStatus.SENT
    assert order_lifecycle.display_status("Received", ["Received"]) == OrderStatus.RECEIVED
    assert not order_lifecycle.all_received([])


def test_terminal_ready_and_essential_ready():
    assert material_lifecycle.all_terminal_ready(["Received", "InUse", "Installed"])
    assert not material_lifecycle.all_terminal_ready(["Received", "OnStock"])
    assert not material_lifecycle.all_terminal_ready([])
    assert material_lifecycle.is_essential_ready("OnStock")
    assert not material_lifecycle.is_essential_ready("Ordered")


def test_orderable_excludes_received_stock_and_in_use():
    assert material_lifecycle.is_orderable("NotOrdered", "")
    assert not material_lifecycle.is_orderable("NotOrdered", "order-1")
    for status in ("Received", "OnStock", "InUse", "Installed"):
        assert not material_lifecycle.is_orderable(status, "")


def test_step_map_follows_custom_steps_and_defaults_to_ready():
    steps = ["Cutting", "Veneering", "Assembly"]
    assert product_lifecycle.next_status_after_step("Cutting", steps) == "Veneering"
    assert product_lifecycle.next_status_after_step("Assembly", steps) == "Ready"
    assert product_lifecycle.next_status_after_step("Drilling") == "Assembly"
    assert product_lifecycle.next_status_after_step("Polishing") == "Ready"


def test_in_production_means_a_step_name():
    assert product_lifecycle.is_in_production("Cutting")
    assert not product_lifecycle.is_in_production("MaterialsReady")
    assert not product_lifecycle.is_in_production("Ready")


def test_last_offer_rejected_cancels_offered_project():
    offers = [_offer("a", OfferStatus.REJECTED), _offer("b", OfferStatus.SENT)]
    # "b" is still Sent in the snapshot; its pending status is passed in
    target = project_lifecycle.status_after_offer_change(ProjectStatus.OFFERED, offers, "b", OfferStatus.REJECTED)
    assert target == ProjectStatus.CANCELLED


def test_rejection_with_open_sibling_keeps_project():
    offers = [_offer("a", OfferStatus.DRAFT), _offer("b", OfferStatus.SENT)]
    target = project_lifecycle.status_after_offer_change(ProjectStatus.OFFERED, offers, "b", OfferStatus.REJECTED)
    assert target == ProjectStatus.OFFERED


def test_approved_project_is_never_cancelled():
    offers = [_offer("a", OfferStatus.SENT)]
    target = project_lifecycle.status_after_offer_change(ProjectStatus.APPROVED, offers, "a", OfferStatus.REJECTED)
    assert target == ProjectStatus.APPROVED


def test_offer_accept_and_send_promote_project():
    assert (
        project_lifecycle.status_after_offer_change(ProjectStatus.DRAFT, [], "a", OfferStatus.SENT)
        == ProjectStatus.OFFERED
    )
    assert (
        project_lifecycle.status_after_offer_change(ProjectStatus.OFFERED, [], "a", OfferStatus.ACCEPTED)
        == ProjectStatus.APPROVED
    )


def test_status_from_products():
    assert project_lifecycle.status_from_products("Approved", ["Cutting", "Waiting"]) == ProjectStatus.IN_PRODUCTION
    assert project_lifecycle.status_from_products("InProduction", ["Ready", "Installed"]) == ProjectStatus.COMPLETED
    assert project_lifecycle.status_from_products("InProduction", ["Cutting"]) is None
    assert project_lifecycle.status_from_products("Offered", ["Cutting"]) is None
    assert project_lifecycle.status_from_products("Approved", []) is None


def test_offer_transitions_and_pricing():
    assert OFFER_TRANSITIONS.apply("Expired", OfferStatus.SENT) == OfferStatus.SENT
    with pytest.raises(InvalidTransitionException):
        OFFER_TRANSITIONS.apply("Accepted", OfferStatus.REJECTED)
    assert margin_amount(200.0, 25.0, MarginType.PERCENTAGE) == pytest.approx(50.0)
    assert margin_amount(200.0, 25.0, MarginType.FIXED) == pytest.approx(25.0)
    assert selling_price(200.0, 10.0, MarginType.PERCENTAGE, 30.0) == pytest.approx(250.0)


def test_assigned_workers_deduplicates_helpers():
    processes = [
        {"step": "Cutting", "worker_id": "w1", "worker_name": "Ana", "helpers": [{"worker_id": "w2"}]},
        {"step": "Assembly", "worker_id": "w2", "worker_name": "Bo", "helpers": [{"worker_id": "w1"}]},
    ]
    workers = work_order_lifecycle.assigned_workers(processes)
    assert [(w["worker_id"], w["role"]) for w in workers] == [("w1", "Worker"), ("w2", "Helper")]


def test_furthest_step():
    steps = ["Cutting", "Edging", "Drilling"]
    assert work_order_lifecycle.furthest_step(steps, ["Edging", "Cutting"]) == "Edging"
    assert work_order_lifecycle.furthest_step(steps, []) is None
