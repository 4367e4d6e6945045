import pytest
from sqlalchemy import select

from partsledger.core.exceptions import InvalidOperationError, InvalidTransitionError
from partsledger.models.alerts.alert import Alert
from partsledger.models.shared.enums import AlertStatus, NotificationStatus, TaskStatus
from partsledger.schemas.alerts.alert_schema import AlertCreate
from partsledger.schemas.task.task_schema import TaskCreate
from partsledger.services.alerts.alert_service import AlertService, stock_alert_key
from partsledger.services.monitor.stock_monitor import StockMonitor
from partsledger.services.notification.notification_service import MAX_DELIVERY_ATTEMPTS, NotificationService
from partsledger.services.task.task_service import TaskService


@pytest.fixture
async def low_stock_alert(session, component, location, make_stock):
    await make_stock(component.id, location.id, quantity=2, minimum_stock=10)
    await StockMonitor(session).run()
    result = await session.execute(select(Alert).where(Alert.open_key == stock_alert_key(component.id)))
    return result.scalar_one()


@pytest.mark.asyncio
class TestAlertLifecycle:
    """Operator actions on alerts"""

    async def test_acknowledge_keeps_alert_open(self, session, low_stock_alert):
        """Acknowledged alerts still hold their dedup key"""
        alert = await AlertService(session).acknowledge(low_stock_alert.id, "supervisor")

        assert alert.status == AlertStatus.ACKNOWLEDGED
        assert alert.acknowledged_by == "supervisor"
        assert alert.open_key is not None

        # the sweep still sees it as the open alert
        result = await StockMonitor(session).run()
        assert result.alerts_created == 0

    async def test_resolve_frees_the_key(self, session, low_stock_alert):
        """Once resolved, the next sweep may open a fresh alert for the same component"""
        alert = await AlertService(session).resolve(low_stock_alert.id, "supervisor", notes="Reorder placed")

        assert alert.status == AlertStatus.RESOLVED
        assert alert.open_key is None
        assert alert.resolution_notes == "Reorder placed"

        result = await StockMonitor(session).run()
        assert result.alerts_created == 1

    async def test_closed_alerts_cannot_move(self, session, low_stock_alert):
        """Resolved and dismissed are terminal"""
        alert_id = low_stock_alert.id
        service = AlertService(session)
        await service.dismiss(alert_id, "supervisor")

        with pytest.raises(InvalidTransitionError):
            await service.resolve(alert_id, "supervisor")
        with pytest.raises(InvalidTransitionError):
            await service.acknowledge(alert_id, "supervisor")

    async def test_manual_alert(self, session):
        """Operator alerts carry no dedup key or provenance"""
        alert = await AlertService(session).create_alert(
            AlertCreate(title="Humidity high", message="Dry cabinet at 18% RH"), "supervisor"
        )

        assert not alert.system_generated
        assert alert.open_key is None
        assert alert.trigger is None

    async def test_stats_count_open_alerts(self, session, low_stock_alert):
        stats = await AlertService(session).get_stats()

        assert stats.total_open == 1
        assert stats.by_type == {"LOW_STOCK": 1}


@pytest.mark.asyncio
class TestNotificationOutbox:
    """Delivery outcomes reported by the dispatcher"""

    async def test_pending_then_sent(self, session, low_stock_alert):
        service = NotificationService(session)
        pending = await service.get_pending()
        assert len(pending) == 1
        assert pending[0].alert_id == low_stock_alert.id

        notification = await service.record_delivery(pending[0].id, delivered=True)

        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at is not None
        assert await service.get_pending() == []

    async def test_failures_exhaust_retries(self, session, low_stock_alert):
        """Repeated failures mark the notification FAILED"""
        service = NotificationService(session)
        notification_id = (await service.get_pending())[0].id

        for _ in range(MAX_DELIVERY_ATTEMPTS):
            notification = await service.record_delivery(notification_id, delivered=False, error_message="timeout")

        assert notification.status == NotificationStatus.FAILED
        assert notification.retry_count == MAX_DELIVERY_ATTEMPTS

        with pytest.raises(InvalidOperationError):
            await service.record_delivery(notification_id, delivered=True)


@pytest.mark.asyncio
class TestTaskWorkflow:
    """Task status graph"""

    async def test_assign_start_complete_verify(self, session):
        service = TaskService(session)
        task = await service.create_task(TaskCreate(title="Count bin C-03"), "planner")
        assert task.status == TaskStatus.PENDING
        assert task.due_at is not None

        await service.assign_task(task.id, "alice", "planner")
        await service.start_task(task.id, "alice")
        await service.complete_task(task.id, "alice", notes="Counted 240")
        task = await service.verify_task(task.id, "planner")

        assert task.status == TaskStatus.VERIFIED
        assert task.assigned_to == "alice"
        assert task.completed_by == "alice"
        assert task.completion_notes == "Counted 240"
        assert task.verified_by == "planner"

    async def test_assignee_at_creation(self, session):
        task = await TaskService(session).create_task(TaskCreate(title="Receive PO", assigned_to="bob"), "planner")

        assert task.status == TaskStatus.ASSIGNED

    async def test_cancelled_task_is_final(self, session):
        service = TaskService(session)
        task = await service.create_task(TaskCreate(title="Relabel"), "planner")
        task_id = task.id
        await service.cancel_task(task_id, "planner")

        with pytest.raises(InvalidTransitionError):
            await service.start_task(task_id, "alice")
