from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field
from partsledger.models.shared.enums import TaskType, TaskStatus, TaskPriority

class TaskBase(BaseModel):
    title: str
    description: Optional[str] = None
    task_type: TaskType = TaskType.GENERAL
    priority: TaskPriority = TaskPriority.NORMAL
    assigned_to: Optional[str] = None
    component_id: Optional[int] = None
    location_id: Optional[int] = None
    purchase_order_id: Optional[int] = None
    build_order_id: Optional[int] = None

class TaskCreate(TaskBase):
    sla_hours: Optional[int] = Field(None, gt=0)
    due_at: Optional[datetime] = None

class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_at: Optional[datetime] = None
    sla_hours: Optional[int] = Field(None, gt=0)

class TaskAssign(BaseModel):
    assigned_to: str

class TaskComplete(BaseModel):
    completion_notes: Optional[str] = None

class TaskResponse(TaskBase):
    id: int
    status: TaskStatus
    due_at: Optional[datetime] = None
    sla_hours: Optional[int] = None
    escalation_level: int
    escalated_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[str] = None
    completion_notes: Optional[str] = None
    verified_at: Optional[datetime] = None
    verified_by: Optional[str] = None
    system_generated: bool
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
