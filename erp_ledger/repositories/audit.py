import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional
from erp_ledger.repositories.base import BaseRepository
from erp_ledger.models.audit import AuditEvent, Actor, ActionType

class AuditLogger(BaseRepository[AuditEvent]):

    async def log_action(self,
                         company_id: str,
                         actor_id: Optional[str],
                         action_type: ActionType,
                         entity: str,
                         details: str,
                         metadata: Optional[Dict[str, Any]] = None):
        """Helper to quickly log an action on the books."""
        actor = Actor(id=actor_id, type="USER") if actor_id else Actor(id="system", type="SYSTEM")
        event = AuditEvent(
            event_id=f"EVT-{uuid.uuid4().hex}",
            company_id=company_id,
            entity=entity,
            timestamp=datetime.utcnow(),
            actor=actor,
            action_type=action_type,
            details=details,
            metadata=metadata or {}
        )
        await self.create(event)

    async def get_for_entity(self, company_id: str, entity: str) -> List[AuditEvent]:
        """Audit events of one entry, period or account, oldest first."""
        return await self.list(
            {"company_id": company_id, "entity": entity},
            limit=500,
            sort=[("timestamp", 1)]
        )
