import logging
from typing import Iterable

from core.collections import Collections
from core.identifiers import new_id
from core.results import OperationResult, operation
from core.store import where
from modules.materials.service import delete_material_records
from modules.products import schemas
from modules.products.schemas import ProductStatus

logger = logging.getLogger(__name__)


@operation("Failed to save product")
async def save_product(ctx, data: schemas.ProductCreate) -> OperationResult:
    await ctx.require(Collections.PROJECTS, data.project_id, "Project not found")
    product = schemas.Product(id=new_id(), status=ProductStatus.WAITING.value, material_cost=0.0, **data.model_dump())
    record = await ctx.add(Collections.PRODUCTS, product.to_record())
    return OperationResult.ok("Product created", record, status_code=201)


@operation("Failed to update product")
async def update_product(ctx, product_id: str, data: schemas.ProductUpdate) -> OperationResult:
    await ctx.require(Collections.PRODUCTS, product_id, "Product not found")
    record = await ctx.update(Collections.PRODUCTS, product_id, data.model_dump(exclude_unset=True, exclude_none=True))
    return OperationResult.ok("Product updated", record)


async def delete_product_records(ctx, product_ids: Iterable[str]) -> int:
    product_ids = list(product_ids)
    if not product_ids:
        return 0
    materials = await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "in", product_ids))
    await delete_material_records(ctx, [m["id"] for m in materials])
    return await ctx.batch_delete(Collections.PRODUCTS, product_ids)


@operation("Failed to delete product")
async def delete_product(ctx, product_id: str) -> OperationResult:
    await ctx.require(Collections.PRODUCTS, product_id, "Product not found")
    await delete_product_records(ctx, [product_id])
    logger.info("Deleted product %s", product_id, extra={"tenant_id": ctx.tenant_id})
    return OperationResult.ok("Product deleted")


@operation("Failed to load product")
async def get_product(ctx, product_id: str) -> OperationResult:
    product = await ctx.require(Collections.PRODUCTS, product_id, "Product not found")
    materials = await ctx.query(Collections.PRODUCT_MATERIALS, where("product_id", "==", product_id))
    return OperationResult.ok("Product loaded", {**product, "materials": materials})


@operation("Failed to load products")
async def list_products(ctx, project_id: str = None) -> OperationResult:
    predicates = [where("project_id", "==", project_id)] if project_id else []
    products = await ctx.query(Collections.PRODUCTS, *predicates)
    return OperationResult.ok(f"{len(products)} products", products)
