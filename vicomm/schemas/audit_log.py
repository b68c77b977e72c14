from pydantic import BaseModel, ConfigDict
from datetime import datetime
from typing import Any, Optional


class AuditLogResponse(BaseModel):
    id: int
    user_id: Optional[int] = None
    action: str
    resource_type: str
    resource_id: Optional[str] = None
    changes: Optional[Any] = None
    status: str
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    request_method: Optional[str] = None
    request_path: Optional[str] = None
    timestamp: Optional[datetime] = None
    duration_ms: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
