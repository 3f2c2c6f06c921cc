import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from riskguard.repositories.base import AuditStore
from riskguard.schemas.underwriting import AuditEvent
from riskguard.utils.ids import new_id

logger = logging.getLogger(__name__)


class AuditRecorder:
    """Appends one event per successful workflow transition, stamped by the workflow's clock."""

    def __init__(self, store: AuditStore, clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        actor: str,
        details: str = "",
    ) -> AuditEvent:
        event = AuditEvent(
            id=new_id(),
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            actor=actor,
            timestamp=self._clock(),
            details=details,
        )
        await self.store.append(event)
        logger.debug("audit %s %s/%s by %s", action, entity_type, entity_id, actor)
        return event

    async def list_events(
        self,
        entity_id: Optional[str] = None,
        entity_type: Optional[str] = None,
    ) -> list[AuditEvent]:
        return await self.store.list(entity_id, entity_type)
