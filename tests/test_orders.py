"""Purchase order cascades: merge, send, receive, quantity edits and deletes."""

import pytest

from core.collections import Collections
from modules.orders import service as order_service
from modules.orders.schemas import MaterialDisposal, OrderCreate, OrderStatus


async def _approved_project_with_two_cabinets(build):
    project = await build.project(status="Approved")
    left = await build.product(project["id"], name="Left cabinet")
    right = await build.product(project["id"], name="Right cabinet")
    return project, left, right


async def _sent_order(ctx, material_ids):
    created = await order_service.create_order(ctx, OrderCreate(material_ids=material_ids))
    assert created.success, created.message
    sent = await order_service.mark_order_sent(ctx, created.data["id"])
    assert sent.success, sent.message
    return created.data


async def test_same_material_across_products_merges_into_one_line(ctx, build):
    _, left, right = await _approved_project_with_two_cabinets(build)
    a = await build.material(left["id"], name="Oak board", unit="m²", quantity=3, unit_price=20.0)
    b = await build.material(right["id"], name="Oak board", unit="m²", quantity=5, unit_price=22.0)

    result = await order_service.create_order(ctx, OrderCreate(material_ids=[a["id"], b["id"]]))
    assert result.success, result.message
    items = result.data["items"]
    assert len(items) == 1
    assert items[0]["quantity"] == pytest.approx(8)
    assert items[0]["expected_price"] == pytest.approx(42.0)
    assert sorted(items[0]["product_material_ids"]) == sorted([a["id"], b["id"]])
    assert items[0]["product_id"] == ""
    assert items[0]["product_name"] == "Left cabinet, Right cabinet"
    assert result.data["status"] == "Draft"
    assert result.data["order_number"].startswith("PO-20260302-")
    assert result.data["total_amount"] == pytest.approx(8 * 42.0)


async def test_create_requires_materials_and_positive_lines(ctx, build):
    project = await build.project()
    product = await build.product(project["id"])
    empty = await build.material(product["id"], quantity=0)

    result = await order_service.create_order(ctx, OrderCreate(material_ids=[]))
    assert not result.success

    result = await order_service.create_order(ctx, OrderCreate(material_ids=[empty["id"]]))
    assert not result.success
    assert result.status_code == 422
    assert await ctx.query(Collections.ORDERS) == []


async def test_send_orders_materials_and_promotes_product_and_project(ctx, build):
    project, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"], quantity=2)

    order = await _sent_order(ctx, [material["id"]])

    stored_material = await ctx.get(Collections.PRODUCT_MATERIALS, material["id"])
    assert stored_material["status"] == "Ordered"
    assert stored_material["order_id"] == order["id"]
    assert stored_material["ordered_quantity"] == pytest.approx(2)
    assert (await ctx.get(Collections.PRODUCTS, left["id"]))["status"] == "MaterialsOrdered"
    assert (await ctx.get(Collections.PROJECTS, project["id"]))["status"] == "InProduction"
    stored_order = await ctx.get(Collections.ORDERS, order["id"])
    assert stored_order["status"] == "Sent"
    assert stored_order["sent_date"]
    assert await ctx.query(Collections.CASCADE_JOURNAL) == []


async def test_receiving_all_items_makes_products_materials_ready(ctx, build):
    _, left, right = await _approved_project_with_two_cabinets(build)
    board = await build.material(left["id"], name="Board", quantity=2)
    hinge = await build.material(right["id"], name="Hinge", quantity=6)
    order = await _sent_order(ctx, [board["id"], hinge["id"]])

    result = await order_service.update_order_status(ctx, order["id"], OrderStatus.RECEIVED)
    assert result.success, result.message

    for material_id in (board["id"], hinge["id"]):
        stored = await ctx.get(Collections.PRODUCT_MATERIALS, material_id)
        assert stored["status"] == "Received"
        assert stored["received_date"]
    for product_id in (left["id"], right["id"]):
        assert (await ctx.get(Collections.PRODUCTS, product_id))["status"] == "MaterialsReady"
    assert (await ctx.get(Collections.ORDERS, order["id"]))["status"] == "Received"


async def test_partial_receipt_shows_partially_received(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    board = await build.material(left["id"], name="Board")
    hinge = await build.material(left["id"], name="Hinge")
    order = await _sent_order(ctx, [board["id"], hinge["id"]])
    items = await ctx.query(Collections.ORDER_ITEMS)
    first = next(i for i in items if i["material_name"] == "Board")

    result = await order_service.receive_items(ctx, [first["id"]])
    assert result.success

    loaded = await order_service.get_order(ctx, order["id"])
    assert loaded.data["status"] == "Sent"
    assert loaded.data["display_status"] == "PartiallyReceived"
    assert loaded.data["received_count"] == 1
    # one material still outstanding
    assert (await ctx.get(Collections.PRODUCTS, left["id"]))["status"] == "MaterialsOrdered"


async def test_partially_received_cannot_be_set(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    order = await _sent_order(ctx, [material["id"]])

    result = await order_service.update_order_status(ctx, order["id"], OrderStatus.PARTIALLY_RECEIVED)
    assert not result.success
    assert (await ctx.get(Collections.ORDERS, order["id"]))["status"] == "Sent"


async def test_deleting_ordered_item_gives_material_back(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    order = await _sent_order(ctx, [material["id"]])
    item = (await ctx.query(Collections.ORDER_ITEMS))[0]

    result = await order_service.delete_order_items(ctx, [item["id"]])
    assert result.success, result.message
    assert result.data["order_empty"]
    assert result.data["deleted_orders"] == []

    stored = await ctx.get(Collections.PRODUCT_MATERIALS, material["id"])
    assert stored["status"] == "NotOrdered"
    assert stored["order_id"] == ""
    assert (await ctx.get(Collections.ORDERS, order["id"]))["total_amount"] == 0


async def test_deleting_received_item_is_rejected_without_changes(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    order = await _sent_order(ctx, [material["id"]])
    item = (await ctx.query(Collections.ORDER_ITEMS))[0]
    await order_service.receive_items(ctx, [item["id"]])

    result = await order_service.delete_order_items(ctx, [item["id"]])
    assert not result.success
    assert (await ctx.get(Collections.ORDER_ITEMS, item["id"]))["status"] == "Received"
    assert (await ctx.get(Collections.PRODUCT_MATERIALS, material["id"]))["status"] == "Received"
    assert (await ctx.get(Collections.ORDERS, order["id"])) is not None


async def test_mixed_delete_keeps_received_items(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    board = await build.material(left["id"], name="Board")
    hinge = await build.material(left["id"], name="Hinge")
    await _sent_order(ctx, [board["id"], hinge["id"]])
    items = {i["material_name"]: i for i in await ctx.query(Collections.ORDER_ITEMS)}
    await order_service.receive_items(ctx, [items["Board"]["id"]])

    result = await order_service.delete_order_items(ctx, [i["id"] for i in items.values()], cascade_empty_order=True)
    assert result.success
    assert result.data["deleted"] == 1
    assert result.data["skipped_received"] == [items["Board"]["id"]]
    assert not result.data["order_empty"]


async def test_empty_order_can_be_deleted_with_its_last_item(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    created = await order_service.create_order(ctx, OrderCreate(material_ids=[material["id"]]))
    item = created.data["items"][0]

    result = await order_service.delete_order_items(ctx, [item["id"]], cascade_empty_order=True)
    assert result.data["deleted_orders"] == [created.data["id"]]
    assert await ctx.get(Collections.ORDERS, created.data["id"]) is None


async def test_quantity_edit_on_sent_order_splits_delta_over_materials(ctx, build):
    _, left, right = await _approved_project_with_two_cabinets(build)
    a = await build.material(left["id"], name="Oak board", unit="m²", quantity=4, unit_price=10.0)
    b = await build.material(right["id"], name="Oak board", unit="m²", quantity=6, unit_price=10.0)
    order = await _sent_order(ctx, [a["id"], b["id"]])
    item = (await ctx.query(Collections.ORDER_ITEMS))[0]
    assert item["quantity"] == pytest.approx(10)

    result = await order_service.update_item_quantities(ctx, order["id"], {item["id"]: 6})
    assert result.success, result.message
    assert result.data["total_amount"] == pytest.approx(6 * 20.0)

    assert (await ctx.get(Collections.PRODUCT_MATERIALS, a["id"]))["ordered_quantity"] == pytest.approx(2)
    assert (await ctx.get(Collections.PRODUCT_MATERIALS, b["id"]))["ordered_quantity"] == pytest.approx(4)
    assert (await ctx.get(Collections.ORDERS, order["id"]))["total_amount"] == pytest.approx(120.0)


async def test_quantity_edit_on_draft_order_leaves_materials(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"], quantity=3)
    created = await order_service.create_order(ctx, OrderCreate(material_ids=[material["id"]]))
    item = created.data["items"][0]

    result = await order_service.update_item_quantities(ctx, created.data["id"], {item["id"]: 5})
    assert result.success
    assert (await ctx.get(Collections.PRODUCT_MATERIALS, material["id"]))["ordered_quantity"] is None


@pytest.mark.parametrize("quantity", [0, -1, 100000])
async def test_quantity_out_of_bounds_is_rejected(ctx, build, quantity):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"], quantity=3)
    created = await order_service.create_order(ctx, OrderCreate(material_ids=[material["id"]]))
    item = created.data["items"][0]

    result = await order_service.update_item_quantities(ctx, created.data["id"], {item["id"]: quantity})
    assert not result.success
    assert (await ctx.get(Collections.ORDER_ITEMS, item["id"]))["quantity"] == pytest.approx(3)


async def test_revert_to_draft_needs_confirmation(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    order = await _sent_order(ctx, [material["id"]])

    result = await order_service.update_order_status(ctx, order["id"], OrderStatus.DRAFT)
    assert not result.success
    assert result.status_code == 409
    assert (await ctx.get(Collections.PRODUCT_MATERIALS, material["id"]))["status"] == "Ordered"

    result = await order_service.update_order_status(ctx, order["id"], OrderStatus.DRAFT, confirm=True)
    assert result.success
    assert result.data["materials_reset"] == 1
    assert (await ctx.get(Collections.PRODUCT_MATERIALS, material["id"]))["status"] == "NotOrdered"
    assert (await ctx.get(Collections.ORDERS, order["id"]))["status"] == "Draft"
    assert (await ctx.query(Collections.ORDER_ITEMS))[0]["status"] == "Pending"


@pytest.mark.parametrize(
    "disposal, material_status, product_status",
    [(MaterialDisposal.RESET, "NotOrdered", "MaterialsOrdered"), (MaterialDisposal.RECEIVED, "Received", "MaterialsReady")],
)
async def test_delete_order_applies_disposal(ctx, build, disposal, material_status, product_status):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    order = await _sent_order(ctx, [material["id"]])

    result = await order_service.delete_order(ctx, order["id"], disposal)
    assert result.success, result.message

    stored = await ctx.get(Collections.PRODUCT_MATERIALS, material["id"])
    assert stored["status"] == material_status
    assert stored["order_id"] == ""
    assert (await ctx.get(Collections.PRODUCTS, left["id"]))["status"] == product_status
    assert await ctx.get(Collections.ORDERS, order["id"]) is None
    assert await ctx.query(Collections.ORDER_ITEMS) == []


async def test_material_already_on_an_order_cannot_be_ordered_again(ctx, build):
    _, left, _ = await _approved_project_with_two_cabinets(build)
    material = await build.material(left["id"])
    await order_service.create_order(ctx, OrderCreate(material_ids=[material["id"]]))

    result = await order_service.create_order(ctx, OrderCreate(material_ids=[material["id"]]))
    assert not result.success
    assert len(await ctx.query(Collections.ORDERS)) == 1
