"""Tenant-scoped document store over the generic ``records`` table.

Collections hold flat JSON records related only through shared identifier
fields. Every call takes the tenant id; records of other tenants are never
returned, updated or deleted.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, NamedTuple, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import async_sessionmaker

from core.errors import NotFoundException, TenantRequiredException, ValidationAppException
from core.models import Record

_RESERVED_FIELDS = ("id", "tenant_id")


class RecordRef(NamedTuple):
    collection: str
    id: str


@dataclass(frozen=True)
class Where:
    field: str
    op: str
    value: Any

    def matches(self, record: Dict[str, Any]) -> bool:
        current = record.get(self.field)
        if self.op == "==":
            return current == self.value
        if self.op == "!=":
            return current != self.value
        if self.op == "in":
            return current in self.value
        raise ValidationAppException(f"Unsupported query operator: {self.op}")


def where(field: str, op: str, value: Any) -> Where:
    if op not in ("==", "!=", "in"):
        raise ValidationAppException(f"Unsupported query operator: {op}")
    return Where(field, op, value)


def _to_dict(row: Record) -> Dict[str, Any]:
    payload = dict(row.data or {})
    payload["id"] = row.id
    payload["tenant_id"] = row.tenant_id
    return payload


def _strip_reserved(record: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in record.items() if k not in _RESERVED_FIELDS}


def _require_tenant(tenant_id: Optional[str]) -> str:
    if not tenant_id:
        raise TenantRequiredException()
    return tenant_id


class DocumentStore:
    def __init__(self, sessionmaker: async_sessionmaker):
        self._sessionmaker = sessionmaker

    async def query(self, tenant_id: str, collection: str, *predicates: Where) -> List[Dict[str, Any]]:
        tenant_id = _require_tenant(tenant_id)
        stmt = select(Record).where(Record.collection == collection, Record.tenant_id == tenant_id)
        remaining = []
        for predicate in predicates:
            if predicate.field == "id" and predicate.op == "==":
                stmt = stmt.where(Record.id == predicate.value)
            elif predicate.field == "id" and predicate.op == "in":
                stmt = stmt.where(Record.id.in_(list(predicate.value)))
            else:
                remaining.append(predicate)
        stmt = stmt.order_by(Record.created_at, Record.id)

        async with self._sessionmaker() as session:
            rows = (await session.execute(stmt)).scalars().all()

        records = [_to_dict(row) for row in rows]
        return [r for r in records if all(p.matches(r) for p in remaining)]

    async def get(self, tenant_id: str, collection: str, record_id: str) -> Optional[Dict[str, Any]]:
        if not record_id:
            return None
        found = await self.query(tenant_id, collection, where("id", "==", record_id))
        return found[0] if found else None

    async def add(self, tenant_id: str, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        tenant_id = _require_tenant(tenant_id)
        record_id = record.get("id")
        if not record_id:
            raise ValidationAppException("Record identifier is required")

        async with self._sessionmaker.begin() as session:
            session.add(
                Record(collection=collection, id=record_id, tenant_id=tenant_id, data=_strip_reserved(record))
            )
        return {**record, "tenant_id": tenant_id}

    async def update(self, tenant_id: str, ref: RecordRef, partial: Dict[str, Any]) -> Dict[str, Any]:
        tenant_id = _require_tenant(tenant_id)
        async with self._sessionmaker.begin() as session:
            row = await session.get(Record, (ref.collection, ref.id))
            if row is None or row.tenant_id != tenant_id:
                raise NotFoundException(f"Record {ref.collection}/{ref.id} not found")
            # assign a new dict so the JSON column change is detected
            row.data = {**(row.data or {}), **_strip_reserved(partial)}
            updated = _to_dict(row)
        return updated

    async def delete(self, tenant_id: str, ref: RecordRef) -> bool:
        return await self.batch_delete(tenant_id, [ref]) > 0

    async def batch_delete(self, tenant_id: str, refs: Iterable[RecordRef]) -> int:
        tenant_id = _require_tenant(tenant_id)
        refs = list(refs)
        if not refs:
            return 0
        deleted = 0
        async with self._sessionmaker.begin() as session:
            for ref in refs:
                result = await session.execute(
                    delete(Record).where(
                        Record.collection == ref.collection,
                        Record.id == ref.id,
                        Record.tenant_id == tenant_id,
                    )
                )
                deleted += result.rowcount or 0
        return deleted
