"""Offers drive the project status; deleting a project removes what hangs off it."""

import pytest

from core.collections import Collections
from core.context import TenantContext
from modules.offers import service as offer_service
from modules.offers.schemas import MarginType, OfferCreate, OfferExtraIn, OfferProductIn, OfferStatus
from modules.projects import service as project_service
from modules.projects.schemas import ProjectUpdate


async def _offer(ctx, project_id, product_id, **product_fields):
    result = await offer_service.create_offer(
        ctx,
        OfferCreate(project_id=project_id, products=[OfferProductIn(product_id=product_id, **product_fields)]),
    )
    assert result.success, result.message
    return result.data


async def test_offer_prices_products_from_material_cost(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    await build.material(product["id"], quantity=2, unit_price=50.0)

    result = await offer_service.create_offer(
        ctx,
        OfferCreate(
            project_id=project["id"],
            transport_cost=40.0,
            products=[
                OfferProductIn(
                    product_id=product["id"],
                    quantity=2,
                    margin=20,
                    margin_type=MarginType.PERCENTAGE,
                    extras=[OfferExtraIn(name="Handles", quantity=4, unit_price=5.0)],
                )
            ],
        ),
    )
    assert result.success, result.message
    # unit price = 100 cost + 20 margin + 20 extras
    assert result.data["subtotal"] == pytest.approx(280.0)
    assert result.data["total"] == pytest.approx(320.0)
    assert result.data["status"] == "Draft"
    assert result.data["offer_number"].startswith("OF-20260302-")

    loaded = await offer_service.get_offer(ctx, result.data["id"])
    assert loaded.data["products"][0]["selling_price"] == pytest.approx(140.0)
    assert loaded.data["products"][0]["extras"][0]["total"] == pytest.approx(20.0)


async def test_offer_rejects_products_of_other_projects(ctx, build):
    project = await build.project()
    other = await build.project(client_name="Other")
    stranger = await build.product(other["id"])

    result = await offer_service.create_offer(
        ctx, OfferCreate(project_id=project["id"], products=[OfferProductIn(product_id=stranger["id"])])
    )
    assert not result.success
    assert await ctx.query(Collections.OFFERS) == []


async def test_sending_and_accepting_offers_move_the_project(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    first = await _offer(ctx, project["id"], product["id"])
    second = await _offer(ctx, project["id"], product["id"])

    await offer_service.update_offer_status(ctx, first["id"], OfferStatus.SENT)
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Offered"

    result = await offer_service.update_offer_status(ctx, first["id"], OfferStatus.ACCEPTED)
    assert result.success
    assert result.data["accepted_date"]
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Approved"
    assert (await ctx.get(Collections.OFFERS, second["id"]))["status"] == "Revised"


async def test_rejecting_last_open_offer_cancels_offered_project(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    first = await _offer(ctx, project["id"], product["id"])
    second = await _offer(ctx, project["id"], product["id"])
    await offer_service.update_offer_status(ctx, first["id"], OfferStatus.SENT)
    await offer_service.update_offer_status(ctx, second["id"], OfferStatus.SENT)

    await offer_service.update_offer_status(ctx, first["id"], OfferStatus.REJECTED)
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Offered"

    await offer_service.update_offer_status(ctx, second["id"], OfferStatus.EXPIRED)
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Cancelled"


async def test_rejecting_offer_of_approved_project_keeps_it_approved(ctx, build):
    project = await build.project(status="Approved")
    product = await build.product(project["id"])
    offer = await _offer(ctx, project["id"], product["id"])

    result = await offer_service.update_offer_status(ctx, offer["id"], OfferStatus.REJECTED)
    assert result.success
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "Approved"


async def test_illegal_offer_transition_changes_nothing(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    offer = await _offer(ctx, project["id"], product["id"])
    await offer_service.update_offer_status(ctx, offer["id"], OfferStatus.REJECTED)

    result = await offer_service.update_offer_status(ctx, offer["id"], OfferStatus.ACCEPTED)
    assert not result.success
    assert result.status_code == 409
    assert (await ctx.get(Collections.OFFERS, offer["id"]))["status"] == "Rejected"


async def test_sync_project_status_from_products(ctx, build):
    project = await build.project(status="InProduction")
    await build.product(project["id"], status="Ready")
    await build.product(project["id"], name="Shelf", status="Installed")

    result = await project_service.sync_project_status(ctx, project["id"])
    assert result.success
    assert result.data == {"status": "Completed"}

    result = await project_service.sync_project_status(ctx, project["id"])
    assert result.data is None


async def test_update_and_delete_project_cascade(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    await build.material(product["id"])
    await _offer(ctx, project["id"], product["id"], extras=[OfferExtraIn(name="Delivery")])

    updated = await project_service.update_project(ctx, project["id"], ProjectUpdate(address="Main St 4"))
    assert updated.data["address"] == "Main St 4"

    result = await project_service.delete_project(ctx, project["id"])
    assert result.success
    for collection in (
        Collections.PROJECTS,
        Collections.PRODUCTS,
        Collections.PRODUCT_MATERIALS,
        Collections.OFFERS,
        Collections.OFFER_PRODUCTS,
        Collections.OFFER_EXTRAS,
    ):
        assert await ctx.query(collection) == []


async def test_records_are_scoped_to_their_tenant(ctx, store, settings, build):
    await build.project()
    other = TenantContext("tenant-b", store, settings=settings)
    result = await project_service.list_projects(other)
    assert result.success
    assert result.data == []
