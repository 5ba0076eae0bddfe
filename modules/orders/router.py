from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.orders import schemas, service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post("")
async def create_order_endpoint(order_in: schemas.OrderCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.create_order(ctx, order_in))


@router.get("")
async def list_orders_endpoint(ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_orders(ctx))


@router.get("/{order_id}")
async def get_order_endpoint(order_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.get_order(ctx, order_id))


@router.post("/{order_id}/send")
async def send_order_endpoint(order_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.mark_order_sent(ctx, order_id))


@router.post("/{order_id}/status")
async def update_order_status_endpoint(
    order_id: str, status_in: schemas.OrderStatusChange, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_order_status(ctx, order_id, status_in.status, status_in.confirm))


@router.post("/items/receive")
async def receive_items_endpoint(receive_in: schemas.ReceiveItems, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.receive_items(ctx, receive_in.item_ids))


@router.patch("/{order_id}/quantities")
async def update_quantities_endpoint(
    order_id: str, edit_in: schemas.QuantityEdit, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_item_quantities(ctx, order_id, edit_in.quantities))


@router.post("/items/delete")
async def delete_items_endpoint(delete_in: schemas.DeleteItems, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_order_items(ctx, delete_in.item_ids, delete_in.cascade_empty_order))


@router.delete("/{order_id}")
async def delete_order_endpoint(
    order_id: str, disposal: schemas.MaterialDisposal, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.delete_order(ctx, order_id, disposal))
