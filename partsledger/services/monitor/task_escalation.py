# partsledger/services/monitor/task_escalation.py
import logging
from datetime import datetime
from typing import List
from sqlalchemy import select, and_

from partsledger.core.config import settings
from partsledger.models.shared.enums import AlertSeverity, AlertTrigger, AlertType, TaskPriority, TaskStatus
from partsledger.models.task.task import Task
from partsledger.schemas.alerts.provenance import TaskEscalationContext, dump_provenance
from partsledger.schemas.monitor.sweep_schema import SweepResult
from partsledger.services.alerts.alert_service import AlertService, task_overdue_alert_key
from partsledger.services.monitor.base_monitor import BaseMonitor, CREATED, ESCALATED, UNCHANGED
from partsledger.services.notification.notification_service import NotificationService
from partsledger.services.task.task_service import OPEN_STATUSES, PRIORITY_RANK
from partsledger.utils.date_time import hours_between

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "task-escalation"

# level -> (minimum priority, alert severity)
ESCALATION_LEVELS = {
    1: (TaskPriority.HIGH, AlertSeverity.WARNING),
    2: (TaskPriority.URGENT, AlertSeverity.CRITICAL),
}


def escalation_level_for(hours_overdue: float) -> int:
    if hours_overdue >= settings.TASK_ESCALATION_LEVEL2_HOURS:
        return 2
    if hours_overdue >= settings.TASK_ESCALATION_LEVEL1_HOURS:
        return 1
    return 0


class TaskEscalationMonitor(BaseMonitor):
    """Escalates open tasks that are past their SLA.

    Escalation level only ever goes up. Each task has at most one open
    overdue alert, which is upgraded in place as the level rises.
    """

    sweep_name = "task_sla"

    async def candidate_ids(self, now: datetime) -> List[int]:
        result = await self.session.execute(
            select(Task.id)
            .where(and_(
                Task.status.in_(OPEN_STATUSES),
                Task.due_at.isnot(None),
                Task.due_at < now,
                Task.is_deleted == False,
            ))
            .order_by(Task.due_at, Task.id)
        )
        return [row[0] for row in result.all()]

    async def evaluate(self, task_id: int, now: datetime, result: SweepResult) -> str:
        task = await self.session.get(Task, task_id)
        if task is None or task.status not in OPEN_STATUSES or task.due_at is None:
            return UNCHANGED

        hours_overdue = hours_between(task.due_at, now)
        target = escalation_level_for(hours_overdue)
        current = task.escalation_level or 0
        if target <= current:
            return UNCHANGED

        min_priority, severity = ESCALATION_LEVELS[target]
        task.escalation_level = target
        task.escalated_at = now
        if PRIORITY_RANK[task.priority] < PRIORITY_RANK[min_priority]:
            task.priority = min_priority
        if task.status == TaskStatus.PENDING:
            task.status = TaskStatus.ESCALATED
        task.updated_by = SYSTEM_ACTOR
        result.escalated += 1

        context = TaskEscalationContext(
            escalation_level=target,
            hours_overdue=round(hours_overdue, 2),
            assigned_to=task.assigned_to,
        )
        message = (
            f"Task '{task.title}' is {int(hours_overdue)}h past due "
            f"(escalation level {target}, priority {task.priority.value})"
        )
        requires_escalation = target >= 2

        alert_service = AlertService(self.session)
        notifications = NotificationService(self.session)
        existing = await alert_service.find_open(task_overdue_alert_key(task_id))

        if existing:
            existing.severity = severity
            existing.message = message
            existing.trigger_context = dump_provenance(context)
            existing.updated_by = SYSTEM_ACTOR
            await self.session.flush()
            await notifications.enqueue_for_alert(existing, requires_escalation, task.assigned_to)
            logger.info(f"Task {task_id} escalated to level {target}")
            return ESCALATED

        alert, _ = await alert_service.open_system_alert(
            task_overdue_alert_key(task_id),
            AlertType.TASK_OVERDUE,
            severity,
            f"Task overdue: {task.title}",
            message,
            AlertTrigger.TASK_ESCALATION,
            context,
            task_id=task_id,
            component_id=task.component_id,
            location_id=task.location_id,
            purchase_order_id=task.purchase_order_id,
            build_order_id=task.build_order_id,
        )
        await notifications.enqueue_for_alert(alert, requires_escalation, task.assigned_to)
        logger.info(f"Task {task_id} escalated to level {target}")
        return CREATED
