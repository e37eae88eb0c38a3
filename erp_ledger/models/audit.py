from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field
from erp_ledger.models.base import MongoModel

class ActionType(str, Enum):
    ENTRY_CREATED = "ENTRY_CREATED"
    ENTRY_UPDATED = "ENTRY_UPDATED"
    ENTRY_DELETED = "ENTRY_DELETED"
    ENTRY_POSTED = "ENTRY_POSTED"
    ENTRY_VALIDATED = "ENTRY_VALIDATED"
    ENTRY_CANCELLED = "ENTRY_CANCELLED"
    PERIOD_CLOSED = "PERIOD_CLOSED"
    ACCOUNT_CREATED = "ACCOUNT_CREATED"

class Actor(BaseModel):
    id: str
    type: str = "USER" # USER, SYSTEM

class AuditEvent(MongoModel):
    """
    Trail of a change made to the books.
    """
    event_id: str = Field(..., description="Unique event ID")
    company_id: str
    entity: str = Field(..., description="Entry number, period key or account code")

    timestamp: datetime = Field(default_factory=datetime.utcnow)

    actor: Actor
    action_type: ActionType
    details: str
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "event_id": "EVT-5f1c",
            "company_id": "acme",
            "entity": "ECR-2024-03-00001",
            "actor": {"id": "65f0c0ffee0000000000beef", "type": "USER"},
            "action_type": "ENTRY_POSTED",
            "details": "Entry ECR-2024-03-00001 posted"
        }
    })
