# partsledger/services/notification/notification_service.py
import logging
from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from partsledger.core.exceptions import NotFoundError, InvalidOperationError
from partsledger.models.alerts.alert import Alert
from partsledger.models.alerts.notification_queue import NotificationQueue
from partsledger.models.shared.enums import AlertSeverity, NotificationStatus
from partsledger.services.common.unit_of_work import atomic
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

MAX_DELIVERY_ATTEMPTS = 3


class NotificationService:
    """Outbox for the external notification dispatcher.

    Rows are written in the same transaction as the alert change that caused
    them; delivery itself happens outside this service.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def enqueue_for_alert(
        self,
        alert: Alert,
        requires_escalation: bool = False,
        recipient: Optional[str] = None,
    ) -> NotificationQueue:
        notification = NotificationQueue(
            channel="PUSH",
            recipient=recipient,
            subject=alert.title,
            message=alert.message,
            priority=1 if alert.severity == AlertSeverity.CRITICAL else 2,
            requires_escalation=requires_escalation,
            status=NotificationStatus.PENDING,
            alert_id=alert.id,
            created_by="system",
        )
        self.session.add(notification)
        await self.session.flush()
        return notification

    async def get_pending(self, limit: int = 100) -> List[NotificationQueue]:
        result = await self.session.execute(
            select(NotificationQueue)
            .where(
                and_(
                    NotificationQueue.status == NotificationStatus.PENDING,
                    NotificationQueue.is_deleted == False,
                )
            )
            .order_by(NotificationQueue.priority, NotificationQueue.id)
            .limit(limit)
        )
        return result.scalars().all()

    async def record_delivery(
        self,
        notification_id: int,
        delivered: bool,
        error_message: Optional[str] = None,
    ) -> NotificationQueue:
        """Record the dispatcher's outcome for one queued notification"""
        async with atomic(self.session, "record notification delivery", "NotificationQueue", notification_id):
            notification = await self.session.get(NotificationQueue, notification_id)
            if not notification:
                raise NotFoundError("Notification", notification_id)
            if notification.status != NotificationStatus.PENDING:
                raise InvalidOperationError(
                    f"Notification {notification_id} is already {notification.status.value}",
                    notification_id=notification_id,
                )

            if delivered:
                notification.status = NotificationStatus.SENT
                notification.sent_at = utc_now()
            else:
                notification.retry_count = (notification.retry_count or 0) + 1
                notification.error_message = error_message
                if notification.retry_count >= MAX_DELIVERY_ATTEMPTS:
                    notification.status = NotificationStatus.FAILED
                    logger.warning(f"Notification {notification_id} failed after {notification.retry_count} attempts")

        return notification
