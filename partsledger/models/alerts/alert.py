from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Enum as SQLEnum, JSON
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import AlertType, AlertSeverity, AlertStatus, AlertTrigger

class Alert(BaseModel):
    __tablename__ = 'alerts'

    alert_type = Column(SQLEnum(AlertType), nullable=False, index=True)
    severity = Column(SQLEnum(AlertSeverity), nullable=False, default=AlertSeverity.WARNING)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(SQLEnum(AlertStatus), nullable=False, default=AlertStatus.ACTIVE, index=True)

    # Linked entities
    component_id = Column(Integer, ForeignKey('components.id'), nullable=True, index=True)
    location_id = Column(Integer, ForeignKey('locations.id'), nullable=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=True, index=True)
    build_order_id = Column(Integer, ForeignKey('build_orders.id'), nullable=True)
    task_id = Column(Integer, ForeignKey('tasks.id'), nullable=True, index=True)

    # Provenance
    system_generated = Column(Boolean, nullable=False, default=False)
    trigger = Column(SQLEnum(AlertTrigger), nullable=True)
    trigger_context = Column(JSON, nullable=True)

    # Set while the alert is open, cleared on resolve/dismiss; one open alert per key
    open_key = Column(String(100), unique=True, nullable=True)

    acknowledged_by = Column(String(100))
    acknowledged_at = Column(DateTime(timezone=True))
    resolved_by = Column(String(100))
    resolved_at = Column(DateTime(timezone=True))
    resolution_notes = Column(Text)
