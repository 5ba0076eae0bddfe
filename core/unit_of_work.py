"""Step journal for cascades that span several independent writes.

There is no multi-record transaction. A cascade records each committed step
in the ``cascade_journal`` collection; when it is retried for the same entity
the recorded steps are skipped. The journal is removed once the cascade
finishes and kept when it fails part-way.
"""

import logging
from typing import Any, Awaitable, Callable, Optional, Set

from core.collections import Collections

logger = logging.getLogger(__name__)


class UnitOfWork:
    def __init__(self, ctx, entity_key: str, operation: str):
        self.ctx = ctx
        self.entity_key = entity_key
        self.operation = operation
        self.completed: Set[str] = set()
        self._persisted = False

    async def __aenter__(self) -> "UnitOfWork":
        journal = await self.ctx.get(Collections.CASCADE_JOURNAL, self.entity_key)
        if journal is not None:
            if journal.get("operation") == self.operation:
                self.completed = set(journal.get("completed_steps") or [])
                self._persisted = True
                logger.info(
                    "Resuming %s for %s, %d steps already applied",
                    self.operation,
                    self.entity_key,
                    len(self.completed),
                    extra={"tenant_id": self.ctx.tenant_id, "entity_key": self.entity_key},
                )
            else:
                await self.ctx.delete(Collections.CASCADE_JOURNAL, self.entity_key)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            if self._persisted:
                await self.ctx.delete(Collections.CASCADE_JOURNAL, self.entity_key)
        else:
            logger.warning(
                "%s for %s stopped after %d steps; retry resumes from the journal",
                self.operation,
                self.entity_key,
                len(self.completed),
                extra={"tenant_id": self.ctx.tenant_id, "entity_key": self.entity_key},
            )
        return False

    async def step(self, name: str, action: Callable[..., Awaitable[Any]], *args, **kwargs) -> Optional[Any]:
        if name in self.completed:
            logger.debug("Skipping applied step %s", name, extra={"step": name})
            return None
        result = await action(*args, **kwargs)
        self.completed.add(name)
        await self._save()
        return result

    async def _save(self) -> None:
        payload = {"operation": self.operation, "completed_steps": sorted(self.completed)}
        if self._persisted:
            await self.ctx.update(Collections.CASCADE_JOURNAL, self.entity_key, payload)
        else:
            await self.ctx.add(Collections.CASCADE_JOURNAL, {"id": self.entity_key, **payload})
            self._persisted = True
