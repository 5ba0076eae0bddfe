from typing import Optional

from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.tasks import schemas, service

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("")
async def create_task_endpoint(task_in: schemas.TaskCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.create_task(ctx, task_in))


@router.get("")
async def list_tasks_endpoint(
    status: Optional[schemas.TaskStatus] = None, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.list_tasks(ctx, status))


@router.post("/{task_id}/status")
async def update_task_status_endpoint(
    task_id: str, status_in: schemas.TaskStatusUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_task_status(ctx, task_id, status_in.status))


@router.delete("/{task_id}")
async def delete_task_endpoint(task_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_task(ctx, task_id))
