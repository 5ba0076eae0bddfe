from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.offers import schemas, service

router = APIRouter(prefix="/offers", tags=["offers"])


@router.post("")
async def create_offer_endpoint(offer_in: schemas.OfferCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.create_offer(ctx, offer_in))


@router.get("/{offer_id}")
async def get_offer_endpoint(offer_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.get_offer(ctx, offer_id))


@router.post("/{offer_id}/status")
async def update_offer_status_endpoint(
    offer_id: str, status_in: schemas.OfferStatusUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_offer_status(ctx, offer_id, status_in.status))


@router.delete("/{offer_id}")
async def delete_offer_endpoint(offer_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_offer(ctx, offer_id))
