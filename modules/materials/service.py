import logging
from typing import Any, Dict, Iterable, List, Sequence, Tuple

from core.collections import Collections
from core.errors import ForbiddenOperationException, ValidationAppException
from core.identifiers import new_id
from core.results import OperationResult, operation
from core.store import where
from modules.aggregates.service import line_total, recalculate_product_cost
from modules.materials import lifecycle
from modules.materials.lifecycle import MATERIAL_TRANSITIONS, MaterialEvent
from modules.materials.schemas import (
    AluDoorItem,
    AluDoorMaterialCreate,
    GlassItem,
    GlassMaterialCreate,
    MaterialCreate,
    MaterialStatus,
    MaterialUpdate,
    ProductMaterial,
)
from modules.products import readiness

logger = logging.getLogger(__name__)

AREA_UNIT = "m²"
EDGE_PROCESSING_SURCHARGE = 1.10

# status changes that belong to the purchase order flow
ORDER_FLOW_EVENTS = frozenset({MaterialEvent.ORDER, MaterialEvent.GIVE_BACK})


def pane_area(qty: int, width_mm: float, height_mm: float) -> float:
    return (width_mm * height_mm) / 1_000_000 * qty


def glass_pricing(items: Sequence, price_per_m2: float) -> Tuple[float, float]:
    """Return ``(area_m2, total_price)``; edge-processed panes carry a 10 % surcharge."""
    area = 0.0
    total = 0.0
    for item in items:
        item_area = pane_area(item.qty, item.width, item.height)
        area += item_area
        total += item_area * price_per_m2 * (EDGE_PROCESSING_SURCHARGE if item.edge_processing else 1.0)
    return area, total


def _effective_unit_price(area: float, total: float, fallback: float) -> float:
    return total / area if area else fallback


async def _require_material(ctx, material_id: str) -> Dict[str, Any]:
    return await ctx.require(Collections.PRODUCT_MATERIALS, material_id, "Material not found")


async def _save_material(ctx, material: ProductMaterial) -> Dict[str, Any]:
    record = await ctx.add(Collections.PRODUCT_MATERIALS, material.to_record())
    await recalculate_product_cost(ctx, material.product_id)
    return record


@operation("Failed to add material")
async def add_material(ctx, data: MaterialCreate) -> OperationResult:
    await ctx.require(Collections.PRODUCTS, data.product_id, "Product not found")
    material = ProductMaterial(
        id=new_id(),
        total_price=line_total(data.quantity, data.unit_price),
        **data.model_dump(),
    )
    record = await _save_material(ctx, material)
    return OperationResult.ok("Material added", record, status_code=201)


@operation("Failed to update material")
async def update_material(ctx, material_id: str, data: MaterialUpdate) -> OperationResult:
    current = await _require_material(ctx, material_id)
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    quantity = changes.get("quantity", current.get("quantity", 0.0))
    unit_price = changes.get("unit_price", current.get("unit_price", 0.0))
    changes["total_price"] = line_total(quantity, unit_price)

    record = await ctx.update(Collections.PRODUCT_MATERIALS, material_id, changes)
    await recalculate_product_cost(ctx, current["product_id"])
    return OperationResult.ok("Material updated", record)


async def delete_material_records(ctx, material_ids: Iterable[str]) -> int:
    """Delete materials with their glass and door sub-items. No cost recalculation."""
    material_ids = list(material_ids)
    if not material_ids:
        return 0
    glass = await ctx.query(Collections.GLASS_ITEMS, where("product_material_id", "in", material_ids))
    doors = await ctx.query(Collections.ALU_DOOR_ITEMS, where("product_material_id", "in", material_ids))
    await ctx.batch_delete(Collections.GLASS_ITEMS, [g["id"] for g in glass])
    await ctx.batch_delete(Collections.ALU_DOOR_ITEMS, [d["id"] for d in doors])
    return await ctx.batch_delete(Collections.PRODUCT_MATERIALS, material_ids)


@operation("Failed to delete material")
async def delete_material(ctx, material_id: str) -> OperationResult:
    current = await _require_material(ctx, material_id)
    if current.get("order_id") and current.get("status") == MaterialStatus.ORDERED.value:
        raise ForbiddenOperationException("Material is on a sent order; remove it from the order first")
    await delete_material_records(ctx, [material_id])
    await recalculate_product_cost(ctx, current["product_id"])
    return OperationResult.ok("Material deleted")


@operation("Failed to change material status")
async def change_material_status(ctx, material_id: str, event: MaterialEvent) -> OperationResult:
    current = await _require_material(ctx, material_id)
    event = MaterialEvent(event)
    if event in ORDER_FLOW_EVENTS or (event == MaterialEvent.RECEIVE and current.get("order_id")):
        raise ForbiddenOperationException("Ordering and receiving of ordered materials go through the order")

    target = MATERIAL_TRANSITIONS.apply(current.get("status"), event)
    changes: Dict[str, Any] = {"status": target.value}
    if event == MaterialEvent.RECEIVE:
        changes["received_date"] = ctx.timestamp()
    record = await ctx.update(Collections.PRODUCT_MATERIALS, material_id, changes)
    await readiness.refresh_materials_ready(ctx, [current["product_id"]])
    return OperationResult.ok("Material status updated", record)


def _glass_items(material_id: str, data: Iterable) -> List[GlassItem]:
    return [
        GlassItem(
            id=new_id(),
            product_material_id=material_id,
            qty=pane.qty,
            width=pane.width,
            height=pane.height,
            area_m2=pane_area(pane.qty, pane.width, pane.height),
            edge_processing=pane.edge_processing,
            note=pane.note,
        )
        for pane in data
    ]


def _alu_door_items(material_id: str, data: Iterable, price_per_m2: float) -> List[AluDoorItem]:
    doors = []
    for door in data:
        area = pane_area(door.qty, door.width, door.height)
        doors.append(
            AluDoorItem(
                id=new_id(),
                product_material_id=material_id,
                unit_price=price_per_m2,
                total_price=line_total(area, price_per_m2),
                area_m2=area,
                **door.model_dump(),
            )
        )
    return doors


async def _replace_sub_items(ctx, collection: str, material_id: str, items: Sequence) -> None:
    existing = await ctx.query(collection, where("product_material_id", "==", material_id))
    await ctx.batch_delete(collection, [e["id"] for e in existing])
    for item in items:
        await ctx.add(collection, item.to_record())


@operation("Failed to add glass material")
async def add_glass_material(ctx, data: GlassMaterialCreate) -> OperationResult:
    await ctx.require(Collections.PRODUCTS, data.product_id, "Product not found")
    if not data.items:
        raise ValidationAppException("At least one glass pane is required")

    area, total = glass_pricing(data.items, data.price_per_m2)
    unit_price = _effective_unit_price(area, total, data.price_per_m2)
    material = ProductMaterial(
        id=new_id(),
        product_id=data.product_id,
        material_id=data.material_id,
        material_name=data.material_name,
        supplier=data.supplier,
        is_essential=data.is_essential,
        quantity=area,
        unit=AREA_UNIT,
        unit_price=unit_price,
        total_price=line_total(area, unit_price),
    )
    record = await _save_material(ctx, material)
    await _replace_sub_items(ctx, Collections.GLASS_ITEMS, material.id, _glass_items(material.id, data.items))
    return OperationResult.ok(
        "Glass material added",
        {"material": record, "item_count": len(data.items), "total_area": area, "total_price": material.total_price},
        status_code=201,
    )


@operation("Failed to update glass material")
async def replace_glass_items(ctx, material_id: str, price_per_m2: float, items: Sequence) -> OperationResult:
    current = await _require_material(ctx, material_id)
    area, total = glass_pricing(items, price_per_m2)
    unit_price = _effective_unit_price(area, total, price_per_m2)

    await _replace_sub_items(ctx, Collections.GLASS_ITEMS, material_id, _glass_items(material_id, items))
    record = await ctx.update(
        Collections.PRODUCT_MATERIALS,
        material_id,
        {"quantity": area, "unit": AREA_UNIT, "unit_price": unit_price, "total_price": line_total(area, unit_price)},
    )
    await recalculate_product_cost(ctx, current["product_id"])
    return OperationResult.ok("Glass material updated", record)


@operation("Failed to add aluminium doors")
async def add_alu_door_material(ctx, data: AluDoorMaterialCreate) -> OperationResult:
    await ctx.require(Collections.PRODUCTS, data.product_id, "Product not found")
    if not data.items:
        raise ValidationAppException("At least one door is required")

    area = sum(pane_area(d.qty, d.width, d.height) for d in data.items)
    material = ProductMaterial(
        id=new_id(),
        product_id=data.product_id,
        material_id=data.material_id,
        material_name=data.material_name,
        supplier=data.supplier,
        is_essential=data.is_essential,
        quantity=area,
        unit=AREA_UNIT,
        unit_price=data.price_per_m2,
        total_price=line_total(area, data.price_per_m2),
    )
    doors = _alu_door_items(material.id, data.items, data.price_per_m2)
    record = await _save_material(ctx, material)
    await _replace_sub_items(ctx, Collections.ALU_DOOR_ITEMS, material.id, doors)
    return OperationResult.ok(
        "Aluminium doors added",
        {
            "material": record,
            "item_count": len(doors),
            "total_qty": sum(d.qty for d in doors),
            "total_area": area,
            "total_price": material.total_price,
        },
        status_code=201,
    )


@operation("Failed to update aluminium doors")
async def replace_alu_door_items(ctx, material_id: str, price_per_m2: float, items: Sequence) -> OperationResult:
    current = await _require_material(ctx, material_id)
    area = sum(pane_area(d.qty, d.width, d.height) for d in items)

    doors = _alu_door_items(material_id, items, price_per_m2)
    await _replace_sub_items(ctx, Collections.ALU_DOOR_ITEMS, material_id, doors)
    record = await ctx.update(
        Collections.PRODUCT_MATERIALS,
        material_id,
        {"quantity": area, "unit": AREA_UNIT, "unit_price": price_per_m2, "total_price": line_total(area, price_per_m2)},
    )
    await recalculate_product_cost(ctx, current["product_id"])
    return OperationResult.ok("Aluminium doors updated", record)


async def materials_on_orders(ctx) -> set:
    items = await ctx.query(Collections.ORDER_ITEMS)
    return {mid for item in items for mid in item.get("product_material_ids") or []}


@operation("Failed to load unordered materials")
async def list_unordered_materials(ctx) -> OperationResult:
    """Materials that can go on a new order: not yet ordered, received or in use, and on no order."""
    materials = await ctx.query(Collections.PRODUCT_MATERIALS)
    taken = await materials_on_orders(ctx)
    available = [
        m
        for m in materials
        if lifecycle.is_orderable(m.get("status", MaterialStatus.NOT_ORDERED), m.get("order_id", ""))
        and m["id"] not in taken
    ]
    return OperationResult.ok(f"{len(available)} unordered materials", available)


@operation("Failed to load materials")
async def list_materials_for_product(ctx, product_id: str) -> OperationResult:
    materials = await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "==", product_id))
    return OperationResult.ok(f"{len(materials)} materials", materials)
