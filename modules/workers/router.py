from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.workers import schemas, service

router = APIRouter(prefix="/workers", tags=["workers"])


@router.post("")
async def create_worker_endpoint(worker_in: schemas.WorkerCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.create_worker(ctx, worker_in))


@router.get("")
async def list_workers_endpoint(ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_workers(ctx))


@router.patch("/{worker_id}")
async def update_worker_endpoint(
    worker_id: str, worker_in: schemas.WorkerUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_worker(ctx, worker_id, worker_in))


@router.delete("/{worker_id}")
async def delete_worker_endpoint(worker_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_worker(ctx, worker_id))
