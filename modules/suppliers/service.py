from core.collections import Collections
from core.identifiers import new_id
from core.results import OperationResult, operation
from modules.suppliers import schemas


@operation("Failed to save supplier")
async def create_supplier(ctx, data: schemas.SupplierCreate) -> OperationResult:
    supplier = schemas.Supplier(id=new_id(), **data.model_dump())
    record = await ctx.add(Collections.SUPPLIERS, supplier.to_record())
    return OperationResult.ok("Supplier created", record, status_code=201)


@operation("Failed to update supplier")
async def update_supplier(ctx, supplier_id: str, data: schemas.SupplierUpdate) -> OperationResult:
    await ctx.require(Collections.SUPPLIERS, supplier_id, "Supplier not found")
    record = await ctx.update(
        Collections.SUPPLIERS, supplier_id, data.model_dump(exclude_unset=True, exclude_none=True)
    )
    return OperationResult.ok("Supplier updated", record)


@operation("Failed to delete supplier")
async def delete_supplier(ctx, supplier_id: str) -> OperationResult:
    await ctx.require(Collections.SUPPLIERS, supplier_id, "Supplier not found")
    await ctx.delete(Collections.SUPPLIERS, supplier_id)
    return OperationResult.ok("Supplier deleted")


@operation("Failed to load suppliers")
async def list_suppliers(ctx) -> OperationResult:
    suppliers = await ctx.query(Collections.SUPPLIERS)
    return OperationResult.ok(f"{len(suppliers)} suppliers", suppliers)
