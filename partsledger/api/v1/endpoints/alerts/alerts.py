from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import AlertSeverity, AlertStatus, AlertType
from partsledger.schemas.alerts.alert_schema import AlertAction, AlertCreate, AlertResponse, AlertStats
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.services.alerts.alert_service import AlertService

router = APIRouter()

@router.post("/", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
async def create_alert(
    alert_data: AlertCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Raise a manual alert"""
    service = AlertService(db)
    return await service.create_alert(alert_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[AlertResponse])
async def get_alerts(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    status: Optional[AlertStatus] = Query(None),
    alert_type: Optional[AlertType] = Query(None),
    severity: Optional[AlertSeverity] = Query(None),
    component_id: Optional[int] = Query(None),
    purchase_order_id: Optional[int] = Query(None),
    task_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.get_alerts(
        page_index=page_index,
        page_size=page_size,
        status=status,
        alert_type=alert_type,
        severity=severity,
        component_id=component_id,
        purchase_order_id=purchase_order_id,
        task_id=task_id
    )

@router.get("/active", response_model=List[AlertResponse])
async def get_active_alerts(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.get_active_alerts()

@router.get("/stats", response_model=AlertStats)
async def get_alert_stats(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.get_stats()

@router.get("/{alert_id}", response_model=AlertResponse)
async def get_alert(
    alert_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.get_alert(alert_id)

@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(
    alert_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.acknowledge(alert_id, current_operator.name)

@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: int,
    action: AlertAction,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.resolve(alert_id, current_operator.name, action.notes)

@router.post("/{alert_id}/dismiss", response_model=AlertResponse)
async def dismiss_alert(
    alert_id: int,
    action: AlertAction,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = AlertService(db)
    return await service.dismiss(alert_id, current_operator.name, action.notes)
