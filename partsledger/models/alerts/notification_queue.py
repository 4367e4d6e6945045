from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Enum as SQLEnum
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import NotificationStatus

class NotificationQueue(BaseModel):
    """Outbox consumed by the external notification dispatcher"""
    __tablename__ = 'notification_queue'

    channel = Column(String(50), nullable=False, default="PUSH")  # PUSH, EMAIL
    recipient = Column(String(100))  # operator name, empty = broadcast to admins
    subject = Column(String(500))
    message = Column(Text, nullable=False)
    priority = Column(Integer, default=2)  # 1=High, 2=Medium, 3=Low
    requires_escalation = Column(Boolean, nullable=False, default=False)
    status = Column(SQLEnum(NotificationStatus), nullable=False, default=NotificationStatus.PENDING, index=True)
    sent_at = Column(DateTime(timezone=True))
    retry_count = Column(Integer, default=0)
    error_message = Column(Text)
    alert_id = Column(Integer, ForeignKey('alerts.id'), nullable=True, index=True)
