"""Base model shared by every persisted entity."""

from typing import Any, ClassVar, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict


class Entity(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    # in-memory child lists attached by the graph assembler, never persisted
    child_fields: ClassVar[Tuple[str, ...]] = ()

    id: str
    tenant_id: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", exclude=set(self.child_fields))
