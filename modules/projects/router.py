from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.projects import schemas, service

router = APIRouter(prefix="/projects", tags=["projects"])


@router.post("")
async def create_project_endpoint(project_in: schemas.ProjectCreate, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.save_project(ctx, project_in))


@router.get("")
async def list_projects_endpoint(ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.list_projects(ctx))


@router.get("/{project_id}")
async def get_project_endpoint(project_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.get_project(ctx, project_id))


@router.patch("/{project_id}")
async def update_project_endpoint(
    project_id: str, project_in: schemas.ProjectUpdate, ctx: TenantContext = Depends(get_tenant_context)
):
    return respond(await service.update_project(ctx, project_id, project_in))


@router.delete("/{project_id}")
async def delete_project_endpoint(project_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.delete_project(ctx, project_id))


@router.post("/{project_id}/sync-status")
async def sync_project_status_endpoint(project_id: str, ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.sync_project_status(ctx, project_id))
