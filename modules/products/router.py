from typing import Optional

from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.products import schemas, service

router = APIRouter(prefix="/products", tags=["products"])


@router.post("")
async def create_product_endpoint(product_in: schemas.ProductCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.save_product(ctx, product_in))


@router.get("")
async def list_products_endpoint(project_id: Optional[str] = None, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_products(ctx, project_id))


@router.get("/{product_id}")
async def get_product_endpoint(product_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.get_product(ctx, product_id))


@router.patch("/{product_id}")
async def update_product_endpoint(
    product_id: str, product_in: schemas.ProductUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_product(ctx, product_id, product_in))


@router.delete("/{product_id}")
async def delete_product_endpoint(product_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_product(ctx, product_id))
