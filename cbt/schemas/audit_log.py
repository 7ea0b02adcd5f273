from pydantic import BaseModel
from datetime import datetime

from cbt.core.constants import AuditActionEnum

class AuditLog(BaseModel):
    id: str
    timestamp: datetime
    action: AuditActionEnum
    details: str
    user: str = "SYSTEM"
