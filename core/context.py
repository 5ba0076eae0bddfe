"""Tenant context threaded through every service operation."""

from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

from fastapi import Header, Request

from core.errors import NotFoundException
from core.identifiers import new_id
from core.settings import Settings, get_settings
from core.store import DocumentStore, RecordRef, Where


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TenantContext:
    """Binds a tenant id to the store, settings, clock and worker-availability capability."""

    def __init__(
        self,
        tenant_id: Optional[str],
        store: DocumentStore,
        settings: Optional[Settings] = None,
        availability: Any = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.tenant_id = tenant_id
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or _utcnow
        self._availability = availability

    @property
    def availability(self):
        if self._availability is None:
            from modules.attendance.service import WorkerStatusAvailability

            self._availability = WorkerStatusAvailability(self)
        return self._availability

    def now(self) -> datetime:
        return self.clock()

    def today(self) -> date:
        return self.now().date()

    def timestamp(self) -> str:
        return self.now().isoformat()

    async def query(self, collection: str, *predicates: Where) -> List[Dict[str, Any]]:
        return await self.store.query(self.tenant_id, collection, *predicates)

    async def get(self, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(self.tenant_id, collection, record_id)

    async def require(self, collection: str, record_id: str, message: str) -> Dict[str, Any]:
        record = await self.get(collection, record_id)
        if record is None:
            raise NotFoundException(message)
        return record

    async def add(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        record = dict(record)
        record["id"] = record.get("id") or new_id()
        record["tenant_id"] = self.tenant_id
        return await self.store.add(self.tenant_id, collection, record)

    async def update(self, collection: str, record_id: str, partial: Dict[str, Any]) -> Dict[str, Any]:
        return await self.store.update(self.tenant_id, RecordRef(collection, record_id), partial)

    async def delete(self, collection: str, record_id: str) -> bool:
        return await self.store.delete(self.tenant_id, RecordRef(collection, record_id))

    async def batch_delete(self, collection: str, record_ids: Iterable[str]) -> int:
        refs = [RecordRef(collection, record_id) for record_id in record_ids]
        return await self.store.batch_delete(self.tenant_id, refs)


def get_tenant_context(request: Request, x_tenant_id: Optional[str] = Header(default=None)) -> TenantContext:
    return TenantContext(
        tenant_id=x_tenant_id,
        store=request.app.state.store,
        settings=request.app.state.settings,
    )
