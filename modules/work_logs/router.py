from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.work_logs import schemas, service

router = APIRouter(prefix="/work-logs", tags=["work_logs"])


@router.post("")
async def create_work_log_endpoint(log_in: schemas.WorkLogCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.create_work_log(ctx, log_in))


@router.get("/items/{item_id}")
async def list_item_work_logs_endpoint(item_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_work_logs_for_item(ctx, item_id))


@router.get("/items/{item_id}/labor-cost")
async def item_labor_cost_endpoint(item_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.calculate_item_labor_cost(ctx, item_id))


@router.get("/work-orders/{work_order_id}")
async def list_work_order_logs_endpoint(work_order_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_work_logs_for_work_order(ctx, work_order_id))


@router.delete("/{work_log_id}")
async def delete_work_log_endpoint(work_log_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_work_log(ctx, work_log_id))
