from core.collections import Collections
from core.identifiers import new_id
from core.results import OperationResult, operation
from modules.workers import schemas


@operation("Failed to save worker")
async def create_worker(ctx, data: schemas.WorkerCreate) -> OperationResult:
    worker = schemas.Worker(id=new_id(), **data.model_dump())
    record = await ctx.add(Collections.WORKERS, worker.to_record())
    return OperationResult.ok("Worker created", record, status_code=201)


@operation("Failed to update worker")
async def update_worker(ctx, worker_id: str, data: schemas.WorkerUpdate) -> OperationResult:
    await ctx.require(Collections.WORKERS, worker_id, "Worker not found")
    record = await ctx.update(Collections.WORKERS, worker_id, data.model_dump(exclude_unset=True, exclude_none=True))
    return OperationResult.ok("Worker updated", record)


@operation("Failed to delete worker")
async def delete_worker(ctx, worker_id: str) -> OperationResult:
    await ctx.require(Collections.WORKERS, worker_id, "Worker not found")
    await ctx.delete(Collections.WORKERS, worker_id)
    return OperationResult.ok("Worker deleted")


@operation("Failed to load workers")
async def list_workers(ctx) -> OperationResult:
    workers = await ctx.query(Collections.WORKERS)
    return OperationResult.ok(f"{len(workers)} workers", workers)
