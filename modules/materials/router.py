from typing import List

from fastapi import APIRouter, Body, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.materials import schemas, service
from modules.materials.lifecycle import MaterialEvent

router = APIRouter(prefix="/materials", tags=["materials"])


@router.post("")
async def add_material_endpoint(material_in: schemas.MaterialCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.add_material(ctx, material_in))


@router.get("/unordered")
async def list_unordered_materials_endpoint(ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_unordered_materials(ctx))


@router.get("/by-product/{product_id}")
async def list_product_materials_endpoint(product_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_materials_for_product(ctx, product_id))


@router.patch("/{material_id}")
async def update_material_endpoint(
    material_id: str, material_in: schemas.MaterialUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_material(ctx, material_id, material_in))


@router.delete("/{material_id}")
async def delete_material_endpoint(material_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_material(ctx, material_id))


@router.post("/{material_id}/status")
async def change_material_status_endpoint(
    material_id: str,
    event: MaterialEvent = Body(..., embed=True),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return respond(await service.change_material_status(ctx, material_id, event))


@router.post("/glass")
async def add_glass_material_endpoint(
    material_in: schemas.GlassMaterialCreate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.add_glass_material(ctx, material_in))


@router.put("/{material_id}/glass-items")
async def replace_glass_items_endpoint(
    material_id: str,
    price_per_m2: float = Body(..., ge=0),
    items: List[schemas.GlassPaneIn] = Body(...),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return respond(await service.replace_glass_items(ctx, material_id, price_per_m2, items))


@router.post("/alu-doors")
async def add_alu_door_material_endpoint(
    material_in: schemas.AluDoorMaterialCreate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.add_alu_door_material(ctx, material_in))


@router.put("/{material_id}/alu-door-items")
async def replace_alu_door_items_endpoint(
    material_id: str,
    price_per_m2: float = Body(..., ge=0),
    items: List[schemas.AluDoorIn] = Body(...),
    ctx: TenantContext = Depends(get_tenant_context),
):
    return respond(await service.replace_alu_door_items(ctx, material_id, price_per_m2, items))
