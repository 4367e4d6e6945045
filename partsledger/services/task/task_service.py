# partsledger/services/task/task_service.py
import logging
from datetime import timedelta
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func

from partsledger.core.config import settings
from partsledger.core.exceptions import InvalidTransitionError, NotFoundError
from partsledger.models.shared.enums import TaskStatus, TaskPriority
from partsledger.models.task.task import Task
from partsledger.schemas.task.task_schema import TaskCreate, TaskUpdate
from partsledger.services.common.unit_of_work import atomic
from partsledger.utils.date_time import utc_now, ensure_aware

logger = logging.getLogger(__name__)

CLOSED_STATUSES = (TaskStatus.COMPLETED, TaskStatus.VERIFIED, TaskStatus.CANCELLED)
OPEN_STATUSES = tuple(s for s in TaskStatus if s not in CLOSED_STATUSES)

TASK_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.ASSIGNED: {TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.ESCALATED: {TaskStatus.ASSIGNED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.CANCELLED},
    TaskStatus.COMPLETED: {TaskStatus.VERIFIED},
    TaskStatus.VERIFIED: set(),
    TaskStatus.CANCELLED: set(),
}

PRIORITY_RANK = {
    TaskPriority.LOW: 0,
    TaskPriority.NORMAL: 1,
    TaskPriority.HIGH: 2,
    TaskPriority.URGENT: 3,
}


class TaskService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_task(self, task_data: TaskCreate, actor: str, system_generated: bool = False) -> Task:
        async with atomic(self.session, "create task", "Task"):
            sla_hours = task_data.sla_hours or settings.DEFAULT_TASK_SLA_HOURS
            due_at = ensure_aware(task_data.due_at) or utc_now() + timedelta(hours=sla_hours)
            task = Task(
                **task_data.model_dump(exclude={"sla_hours", "due_at"}),
                sla_hours=sla_hours,
                due_at=due_at,
                status=TaskStatus.ASSIGNED if task_data.assigned_to else TaskStatus.PENDING,
                escalation_level=0,
                system_generated=system_generated,
                created_by=actor,
                updated_by=actor,
            )
            self.session.add(task)
        logger.info(f"Task '{task.title}' created by {actor}, due {task.due_at}")
        return task

    async def get_task(self, task_id: int) -> Task:
        task = await self.session.get(Task, task_id)
        if not task or task.is_deleted:
            raise NotFoundError("Task", task_id)
        return task

    async def _move(self, task_id: int, target: TaskStatus, actor: str) -> Task:
        task = await self.get_task(task_id)
        allowed = TASK_TRANSITIONS[task.status]
        if target not in allowed:
            raise InvalidTransitionError("Task", task_id, task.status.value, target.value, [s.value for s in allowed])
        task.status = target
        task.updated_by = actor
        return task

    async def update_task(self, task_id: int, task_data: TaskUpdate, actor: str) -> Task:
        async with atomic(self.session, "update task", "Task", task_id):
            task = await self.get_task(task_id)
            for field, value in task_data.model_dump(exclude_unset=True).items():
                if value is None and field in ("title", "priority"):
                    continue
                setattr(task, field, value)
            task.updated_by = actor
        return task

    async def assign_task(self, task_id: int, assignee: str, actor: str) -> Task:
        async with atomic(self.session, "assign task", "Task", task_id):
            task = await self._move(task_id, TaskStatus.ASSIGNED, actor)
            task.assigned_to = assignee
        logger.info(f"Task {task_id} assigned to {assignee} by {actor}")
        return task

    async def start_task(self, task_id: int, actor: str) -> Task:
        async with atomic(self.session, "start task", "Task", task_id):
            task = await self._move(task_id, TaskStatus.IN_PROGRESS, actor)
            task.started_at = task.started_at or utc_now()
            task.assigned_to = task.assigned_to or actor
        return task

    async def complete_task(self, task_id: int, actor: str, notes: Optional[str] = None) -> Task:
        async with atomic(self.session, "complete task", "Task", task_id):
            task = await self._move(task_id, TaskStatus.COMPLETED, actor)
            task.completed_at = utc_now()
            task.completed_by = actor
            task.completion_notes = notes
        logger.info(f"Task {task_id} completed by {actor}")
        return task

    async def verify_task(self, task_id: int, actor: str) -> Task:
        async with atomic(self.session, "verify task", "Task", task_id):
            task = await self._move(task_id, TaskStatus.VERIFIED, actor)
            task.verified_at = utc_now()
            task.verified_by = actor
        return task

    async def cancel_task(self, task_id: int, actor: str) -> Task:
        async with atomic(self.session, "cancel task", "Task", task_id):
            task = await self._move(task_id, TaskStatus.CANCELLED, actor)
        return task

    async def get_tasks(
        self,
        page_index: int = 1,
        page_size: int = 100,
        status: Optional[TaskStatus] = None,
        assigned_to: Optional[str] = None,
        overdue_only: bool = False,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [Task.is_deleted == False]
        if status:
            conditions.append(Task.status == status)
        if assigned_to:
            conditions.append(Task.assigned_to == assigned_to)
        if overdue_only:
            conditions.append(and_(Task.status.in_(OPEN_STATUSES), Task.due_at < utc_now()))
        if search:
            conditions.append(or_(Task.title.ilike(f"%{search}%"), Task.description.ilike(f"%{search}%")))

        count_result = await self.session.execute(select(func.count(Task.id)).where(and_(*conditions)))
        result = await self.session.execute(
            select(Task)
            .where(and_(*conditions))
            .order_by(Task.due_at, Task.id)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": count_result.scalar() or 0,
            "data": result.scalars().all(),
        }
