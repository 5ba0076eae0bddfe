from fastapi import APIRouter, Depends

from core.context import TenantContext, get_tenant_context
from core.results import respond
from modules.graph import service

router = APIRouter(prefix="/graph", tags=["graph"])


@router.get("")
async def get_graph_endpoint(ctx: TenantContext = Depends(get_tenant_context)):
    return respond(await service.get_graph(ctx))
