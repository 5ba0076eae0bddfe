import logging
from typing import Iterable, List, Optional

from core.collections import Collections
from core.identifiers import new_id
from core.results import OperationResult, operation
from core.store import where
from modules.offers.service import delete_offer_records
from modules.products.service import delete_product_records
from modules.projects import lifecycle, schemas
from modules.projects.lifecycle import PROJECT_TRANSITIONS, ProjectEvent
from modules.projects.schemas import ProjectStatus

logger = logging.getLogger(__name__)


@operation("Failed to save project")
async def save_project(ctx, data: schemas.ProjectCreate) -> OperationResult:
    project = schemas.Project(
        id=new_id(),
        status=ProjectStatus.DRAFT,
        created_date=ctx.timestamp(),
        **data.model_dump(),
    )
    record = await ctx.add(Collections.PROJECTS, project.to_record())
    return OperationResult.ok("Project created", record, status_code=201)


@operation("Failed to update project")
async def update_project(ctx, project_id: str, data: schemas.ProjectUpdate) -> OperationResult:
    await ctx.require(Collections.PROJECTS, project_id, "Project not found")
    changes = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
    record = await ctx.update(Collections.PROJECTS, project_id, changes)
    return OperationResult.ok("Project updated", record)


@operation("Failed to delete project")
async def delete_project(ctx, project_id: str) -> OperationResult:
    await ctx.require(Collections.PROJECTS, project_id, "Project not found")
    products = await ctx.query(Collections.PRODUCTS, where("project_id", "==", project_id))
    offers = await ctx.query(Collections.OFFERS, where("project_id", "==", project_id))

    await delete_product_records(ctx, [p["id"] for p in products])
    await delete_offer_records(ctx, [o["id"] for o in offers])
    await ctx.delete(Collections.PROJECTS, project_id)
    logger.info(
        "Deleted project %s with %d products and %d offers",
        project_id,
        len(products),
        len(offers),
        extra={"tenant_id": ctx.tenant_id},
    )
    return OperationResult.ok("Project deleted")


@operation("Failed to load project")
async def get_project(ctx, project_id: str) -> OperationResult:
    project = await ctx.require(Collections.PROJECTS, project_id, "Project not found")
    products = await ctx.query(Collections.PRODUCTS, where("project_id", "==", project_id))
    offers = await ctx.query(Collections.OFFERS, where("project_id", "==", project_id))
    return OperationResult.ok("Project loaded", {**project, "products": products, "offers": offers})


@operation("Failed to load projects")
async def list_projects(ctx) -> OperationResult:
    projects = await ctx.query(Collections.PROJECTS)
    return OperationResult.ok(f"{len(projects)} projects", projects)


async def project_ids_for_products(ctx, product_ids: Iterable[str]) -> List[str]:
    ids = sorted({pid for pid in product_ids if pid})
    if not ids:
        return []
    products = await ctx.query(Collections.PRODUCTS, where("id", "in", ids))
    return sorted({p["project_id"] for p in products if p.get("project_id")})


async def promote_projects(ctx, project_ids: Iterable[str], event: ProjectEvent) -> List[str]:
    """Apply ``event`` to each project where it is defined; others are left alone."""
    ids = sorted({pid for pid in project_ids if pid})
    if not ids:
        return []
    changed = []
    for project in await ctx.query(Collections.PROJECTS, where("id", "in", ids)):
        current = project.get("status", ProjectStatus.DRAFT.value)
        target = PROJECT_TRANSITIONS.advance(current, event)
        if target != current:
            await ctx.update(Collections.PROJECTS, project["id"], {"status": ProjectStatus(target).value})
            changed.append(project["id"])
    return changed


async def resync_project(ctx, project_id: str) -> Optional[ProjectStatus]:
    """Re-derive the project status from its products. Returns the new status if it changed."""
    project = await ctx.get(Collections.PROJECTS, project_id)
    if project is None:
        return None
    products = await ctx.query(Collections.PRODUCTS, where("project_id", "==", project_id))
    target = lifecycle.status_from_products(project.get("status", ProjectStatus.DRAFT), [p.get("status") for p in products])
    if target is not None:
        await ctx.update(Collections.PROJECTS, project_id, {"status": target.value})
        logger.info("Project %s is now %s", project_id, target.value, extra={"tenant_id": ctx.tenant_id})
    return target


@operation("Failed to sync project status")
async def sync_project_status(ctx, project_id: str) -> OperationResult:
    await ctx.require(Collections.PROJECTS, project_id, "Project not found")
    target = await resync_project(ctx, project_id)
    if target is None:
        return OperationResult.ok("Project status unchanged")
    return OperationResult.ok(f"Project status set to {target.value}", {"status": target.value})
