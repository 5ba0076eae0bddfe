"""Worker availability used to gate the start of production."""

from typing import Protocol

from core.collections import Collections
from modules.attendance.schemas import Availability


class AvailabilityChecker(Protocol):
    async def can_start(self, worker_id: str) -> Availability:
        ...


class WorkerStatusAvailability:
    """Reads availability from the worker record's status."""

    def __init__(self, ctx):
        self.ctx = ctx

    async def can_start(self, worker_id: str) -> Availability:
        worker = await self.ctx.get(Collections.WORKERS, worker_id)
        if worker is None:
            return Availability(allowed=False, reason="Worker not found")
        status = worker.get("status") or ""
        if status in self.ctx.settings.unavailable_worker_statuses:
            return Availability(allowed=False, reason=f"Worker status is {status}", status=status)
        return Availability(allowed=True, status=status or None)
