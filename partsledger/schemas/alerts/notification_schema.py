from typing import Optional
from datetime import datetime
from pydantic import BaseModel
from partsledger.models.shared.enums import NotificationStatus

class NotificationResponse(BaseModel):
    id: int
    channel: str
    recipient: Optional[str] = None
    subject: Optional[str] = None
    message: str
    priority: int
    requires_escalation: bool
    status: NotificationStatus
    alert_id: Optional[int] = None
    sent_at: Optional[datetime] = None
    retry_count: int = 0
    error_message: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True

class NotificationDeliveryUpdate(BaseModel):
    delivered: bool = True
    error_message: Optional[str] = None
