from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.work_orders import schemas, service

router = APIRouter(prefix="/work-orders", tags=["work_orders"])


@router.post("")
async def create_work_order_endpoint(
    work_order_in: schemas.WorkOrderCreate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.create_work_order(ctx, work_order_in))


@router.get("")
async def list_work_orders_endpoint(scheduled: bool = False, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_work_orders(ctx, scheduled))


@router.post("/worker-conflicts")
async def worker_conflicts_endpoint(
    query_in: schemas.WorkerConflictQuery, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(
        await service.check_worker_conflicts(
            ctx, query_in.worker_ids, query_in.start_date, query_in.end_date, query_in.exclude_work_order_id
        )
    )


@router.get("/{work_order_id}")
async def get_work_order_endpoint(work_order_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.get_work_order(ctx, work_order_id))


@router.post("/{work_order_id}/start")
async def start_work_order_endpoint(work_order_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.start_work_order(ctx, work_order_id))


@router.post("/{work_order_id}/schedule")
async def schedule_work_order_endpoint(
    work_order_id: str, schedule_in: schemas.ScheduleIn, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(
        await service.schedule_work_order(
            ctx, work_order_id, schedule_in.planned_start_date, schedule_in.planned_end_date
        )
    )


@router.patch("/{work_order_id}/schedule")
async def reschedule_work_order_endpoint(
    work_order_id: str, schedule_in: schemas.ScheduleIn, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(
        await service.reschedule_work_order(
            ctx, work_order_id, schedule_in.planned_start_date, schedule_in.planned_end_date
        )
    )


@router.delete("/{work_order_id}/schedule")
async def unschedule_work_order_endpoint(work_order_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.unschedule_work_order(ctx, work_order_id))


@router.post("/items/{item_id}/complete")
async def complete_item_endpoint(
    item_id: str, step_in: schemas.CompleteStepIn, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.complete_work_order_item(ctx, item_id, step_in.step))


@router.delete("/{work_order_id}")
async def delete_work_order_endpoint(
    work_order_id: str,
    disposal: schemas.ProductDisposal = schemas.ProductDisposal.WAITING,
    ctx: TenantContext = Depends(get_tenant_context),
):
    return respond(await service.delete_work_order(ctx, work_order_id, disposal))
