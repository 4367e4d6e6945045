from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, Enum as SQLEnum
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import TaskType, TaskStatus, TaskPriority

class Task(BaseModel):
    __tablename__ = 'tasks'

    title = Column(String(200), nullable=False)
    description = Column(Text)
    task_type = Column(SQLEnum(TaskType), nullable=False, default=TaskType.GENERAL)

    # Status and priority
    status = Column(SQLEnum(TaskStatus), nullable=False, default=TaskStatus.PENDING, index=True)
    priority = Column(SQLEnum(TaskPriority), nullable=False, default=TaskPriority.NORMAL)
    assigned_to = Column(String(100))

    # SLA
    due_at = Column(DateTime(timezone=True), index=True)
    sla_hours = Column(Integer)
    escalation_level = Column(Integer, nullable=False, default=0)
    escalated_at = Column(DateTime(timezone=True))

    # Related records
    component_id = Column(Integer, ForeignKey('components.id'), nullable=True)
    location_id = Column(Integer, ForeignKey('locations.id'), nullable=True)
    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=True)
    build_order_id = Column(Integer, ForeignKey('build_orders.id'), nullable=True)

    # Lifecycle stamps
    started_at = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    completed_by = Column(String(100))
    completion_notes = Column(Text)
    verified_at = Column(DateTime(timezone=True))
    verified_by = Column(String(100))

    system_generated = Column(Boolean, nullable=False, default=False)
