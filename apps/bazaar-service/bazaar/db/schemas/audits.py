from datetime import datetime
from typing import Optional, Dict, Any
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AuditLogBase(BaseModel):
    action_type: str
    status: str
    target_type: Optional[str] = None
    target_id: Optional[int] = None
    reason: Optional[str] = None
    # ORM rows expose the JSON column as metadata_json ('metadata' is reserved on declarative classes)
    metadata: Optional[Dict[str, Any]] = Field(
        default=None,
        validation_alias=AliasChoices("metadata_json", "metadata"),
    )


class AuditLogCreate(AuditLogBase):
    pass


class AuditLog(AuditLogBase):
    id: int
    actor_user_id: Optional[int] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
