from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.schemas.alerts.notification_schema import NotificationDeliveryUpdate, NotificationResponse
from partsledger.services.notification.notification_service import NotificationService

router = APIRouter()

@router.get("/pending", response_model=List[NotificationResponse])
async def get_pending_notifications(
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Queued notifications for the dispatcher, most urgent first"""
    service = NotificationService(db)
    return await service.get_pending(limit)

@router.post("/{notification_id}/delivery", response_model=NotificationResponse)
async def record_delivery(
    notification_id: int,
    delivery: NotificationDeliveryUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = NotificationService(db)
    return await service.record_delivery(notification_id, delivery.delivered, delivery.error_message)
