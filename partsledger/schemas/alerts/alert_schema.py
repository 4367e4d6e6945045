from typing import Optional, Dict
from datetime import datetime
from pydantic import BaseModel, validator
from partsledger.models.shared.enums import AlertType, AlertSeverity, AlertStatus, AlertTrigger
from partsledger.schemas.alerts.provenance import AlertProvenance

class AlertBase(BaseModel):
    alert_type: AlertType = AlertType.GENERAL
    severity: AlertSeverity = AlertSeverity.INFO
    title: str
    message: str
    component_id: Optional[int] = None
    location_id: Optional[int] = None
    purchase_order_id: Optional[int] = None
    build_order_id: Optional[int] = None
    task_id: Optional[int] = None

class AlertCreate(AlertBase):
    @validator('title', 'message')
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Value must not be blank')
        return v

class AlertAction(BaseModel):
    notes: Optional[str] = None

class AlertResponse(AlertBase):
    id: int
    status: AlertStatus
    system_generated: bool
    trigger: Optional[AlertTrigger] = None
    trigger_context: Optional[AlertProvenance] = None
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class AlertStats(BaseModel):
    total_open: int
    by_type: Dict[str, int]
    by_severity: Dict[str, int]
    by_status: Dict[str, int]
