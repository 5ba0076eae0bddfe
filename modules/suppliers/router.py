from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.suppliers import schemas, service

router = APIRouter(prefix="/suppliers", tags=["suppliers"])


@router.post("")
async def create_supplier_endpoint(
    supplier_in: schemas.SupplierCreate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.create_supplier(ctx, supplier_in))


@router.get("")
async def list_suppliers_endpoint(ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_suppliers(ctx))


@router.patch("/{supplier_id}")
async def update_supplier_endpoint(
    supplier_id: str, supplier_in: schemas.SupplierUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_supplier(ctx, supplier_id, supplier_in))


@router.delete("/{supplier_id}")
async def delete_supplier_endpoint(supplier_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_supplier(ctx, supplier_id))
