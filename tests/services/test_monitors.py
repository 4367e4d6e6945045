import pytest
from datetime import timedelta
from decimal import Decimal
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from partsledger.models.alerts.alert import Alert
from partsledger.models.alerts.notification_queue import NotificationQueue
from partsledger.models.shared.enums import (
    AlertSeverity, AlertStatus, AlertTrigger, AlertType, PurchaseOrderStatus, TaskPriority, TaskStatus,
)
from partsledger.schemas.purchase.purchase_order_schema import PurchaseOrderCreate, PurchaseOrderLineCreate
from partsledger.schemas.task.task_schema import TaskCreate, TaskUpdate
from partsledger.services.inventory.stock_service import StockService
from partsledger.services.monitor.po_monitor import PurchaseOrderMonitor
from partsledger.services.monitor.stock_monitor import StockMonitor
from partsledger.services.monitor.task_escalation import TaskEscalationMonitor, escalation_level_for
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService
from partsledger.services.task.task_service import TaskService
from partsledger.utils.date_time import utc_now


async def all_alerts(session):
    result = await session.execute(select(Alert).order_by(Alert.id).execution_options(populate_existing=True))
    return result.scalars().all()


async def notification_count(session) -> int:
    result = await session.execute(select(func.count(NotificationQueue.id)))
    return result.scalar()


@pytest.mark.asyncio
class TestStockMonitor:
    """One stock alert per component, kept in step with the worst record"""

    async def test_low_stock_alert_is_idempotent(self, session, component, location, make_stock):
        """A second sweep over unchanged stock creates nothing"""
        await make_stock(component.id, location.id, quantity=8, minimum_stock=10)

        first = await StockMonitor(session).run()
        second = await StockMonitor(session).run()

        assert first.items_checked == 1
        assert first.alerts_created == 1
        assert second.alerts_created == 0
        alerts = await all_alerts(session)
        assert len(alerts) == 1
        assert alerts[0].alert_type == AlertType.LOW_STOCK
        assert alerts[0].severity == AlertSeverity.WARNING
        assert alerts[0].trigger == AlertTrigger.STOCK_MONITOR
        assert alerts[0].trigger_context["trigger"] == "stock_monitor"
        assert alerts[0].trigger_context["quantity"] == 8
        assert await notification_count(session) == 1

    async def test_half_minimum_is_critical(self, session, component, location, make_stock):
        """At or below half the minimum the alert opens as critical"""
        await make_stock(component.id, location.id, quantity=5, minimum_stock=10)

        await StockMonitor(session).run()

        alerts = await all_alerts(session)
        assert alerts[0].severity == AlertSeverity.CRITICAL

    async def test_low_alert_escalates_in_place(self, session, component, location, make_stock):
        """Falling to half the minimum upgrades the open alert instead of adding one"""
        record = await make_stock(component.id, location.id, quantity=8, minimum_stock=10)
        await StockMonitor(session).run()
        await StockService(session).set_quantity(record.id, 4, "Pulled for rework", "tester")

        result = await StockMonitor(session).run()

        assert result.alerts_escalated == 1
        assert result.alerts_created == 0
        alerts = await all_alerts(session)
        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].trigger_context["quantity"] == 4

    async def test_out_of_stock_supersedes_low(self, session, component, location, make_stock):
        """The low alert closes and a critical out-of-stock alert takes its key"""
        record = await make_stock(component.id, location.id, quantity=8, minimum_stock=10)
        await StockMonitor(session).run()
        await StockService(session).set_quantity(record.id, 0, "Reel empty", "tester")

        result = await StockMonitor(session).run()

        assert result.alerts_created == 1
        low, out = await all_alerts(session)
        assert low.alert_type == AlertType.LOW_STOCK
        assert low.status == AlertStatus.RESOLVED
        assert low.open_key is None
        assert "Superseded" in low.resolution_notes
        assert out.alert_type == AlertType.OUT_OF_STOCK
        assert out.severity == AlertSeverity.CRITICAL
        assert out.status == AlertStatus.ACTIVE

        notifications = await session.execute(
            select(NotificationQueue).where(NotificationQueue.alert_id == out.id)
        )
        assert notifications.scalar_one().requires_escalation

    async def test_healthy_stock_resolves_alert(self, session, component, location, make_stock):
        """Stock back above the minimum closes the open alert"""
        record = await make_stock(component.id, location.id, quantity=3, minimum_stock=10)
        await StockMonitor(session).run()
        await StockService(session).set_quantity(record.id, 50, "Found a full reel", "tester")

        result = await StockMonitor(session).run()

        assert result.alerts_resolved == 1
        alerts = await all_alerts(session)
        assert alerts[0].status == AlertStatus.RESOLVED
        assert alerts[0].resolved_by == "stock-monitor"

    async def test_worst_location_decides(self, session, component, location, other_location, make_stock):
        """An empty shelf raises out-of-stock even when another shelf is healthy"""
        await make_stock(component.id, location.id, quantity=100, minimum_stock=10)
        await make_stock(component.id, other_location.id, quantity=0, minimum_stock=5)

        await StockMonitor(session).run()

        alerts = await all_alerts(session)
        assert len(alerts) == 1
        assert alerts[0].alert_type == AlertType.OUT_OF_STOCK
        assert alerts[0].location_id == other_location.id

    async def test_message_includes_incoming_quantity(self, session, supplier, component, location, make_stock):
        """Units on open purchase orders are shown on the alert"""
        await make_stock(component.id, location.id, quantity=2, minimum_stock=10)
        po_service = PurchaseOrderService(session)
        po = await po_service.create_purchase_order(
            PurchaseOrderCreate(
                supplier_id=supplier.id,
                lines=[PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=25, unit_price=Decimal("1"))],
            ),
            "buyer",
        )
        await po_service.update_status(po.id, PurchaseOrderStatus.SUBMITTED, "buyer")

        await StockMonitor(session).run()

        alerts = await all_alerts(session)
        assert "25 incoming" in alerts[0].message
        assert alerts[0].trigger_context["incoming_qty"] == 25

    async def test_one_failure_does_not_stop_the_sweep(
        self, session, component, location, make_component, make_stock, monkeypatch
    ):
        """An error on one component is counted and the rest are still processed"""
        capacitor = await make_component(part_number="C-10U-0805", name="Cap 10u")
        await make_stock(component.id, location.id, quantity=1, minimum_stock=10)
        await make_stock(capacitor.id, location.id, quantity=1, minimum_stock=10)
        broken_id = component.id

        original = StockMonitor.evaluate

        async def flaky(self, entity_id, now, result):
            if entity_id == broken_id:
                raise RuntimeError("lost connection")
            return await original(self, entity_id, now, result)

        monkeypatch.setattr(StockMonitor, "evaluate", flaky)
        result = await StockMonitor(session).run()

        assert result.items_checked == 2
        assert result.errors == 1
        assert result.alerts_created == 1

    async def test_lost_race_is_skipped(self, session, component, location, make_stock, monkeypatch):
        """A unique-key clash from a concurrent sweep is counted as skipped"""
        await make_stock(component.id, location.id, quantity=1, minimum_stock=10)

        async def clash(self, entity_id, now, result):
            raise IntegrityError("INSERT INTO alerts", {}, Exception("UNIQUE constraint failed: alerts.open_key"))

        monkeypatch.setattr(StockMonitor, "evaluate", clash)
        result = await StockMonitor(session).run()

        assert result.skipped == 1
        assert result.errors == 0


@pytest.mark.asyncio
class TestPurchaseOrderMonitor:
    """Late purchase orders get one overdue alert each"""

    async def test_overdue_alert_and_escalation(self, session, supplier):
        """Warning at first, critical once more than a week late"""
        po_service = PurchaseOrderService(session)
        po = await po_service.create_purchase_order(
            PurchaseOrderCreate(supplier_id=supplier.id, expected_delivery=(utc_now() - timedelta(days=3)).date()),
            "buyer",
        )
        await po_service.update_status(po.id, PurchaseOrderStatus.SUBMITTED, "buyer")

        first = await PurchaseOrderMonitor(session).run()
        again = await PurchaseOrderMonitor(session).run()
        later = await PurchaseOrderMonitor(session).run(now=utc_now() + timedelta(days=10))

        assert first.alerts_created == 1
        assert again.alerts_created == 0
        assert again.alerts_escalated == 0
        assert later.alerts_escalated == 1

        alerts = await all_alerts(session)
        assert len(alerts) == 1
        assert alerts[0].alert_type == AlertType.PO_OVERDUE
        assert alerts[0].purchase_order_id == po.id
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].trigger_context["days_overdue"] == 13

    async def test_closed_orders_are_ignored(self, session, supplier):
        """Cancelled orders are never reported overdue"""
        po_service = PurchaseOrderService(session)
        po = await po_service.create_purchase_order(
            PurchaseOrderCreate(supplier_id=supplier.id, expected_delivery=(utc_now() - timedelta(days=3)).date()),
            "buyer",
        )
        await po_service.update_status(po.id, PurchaseOrderStatus.CANCELLED, "buyer")

        result = await PurchaseOrderMonitor(session).run()

        assert result.items_checked == 0
        assert await all_alerts(session) == []


@pytest.mark.asyncio
class TestTaskEscalationMonitor:
    """Overdue tasks climb escalation levels and never come back down"""

    async def test_levels_follow_hours_overdue(self):
        assert escalation_level_for(2) == 0
        assert escalation_level_for(24) == 1
        assert escalation_level_for(47.5) == 1
        assert escalation_level_for(48) == 2

    async def test_escalation_upgrades_one_alert(self, session):
        """Level 1 opens a warning; level 2 upgrades the same alert to critical"""
        task = await TaskService(session).create_task(
            TaskCreate(title="Count bin A-01", due_at=utc_now() - timedelta(hours=30)),
            "planner",
        )
        monitor = TaskEscalationMonitor(session)

        first = await monitor.run()
        task = await TaskService(session).get_task(task.id)
        assert first.alerts_created == 1
        assert first.escalated == 1
        assert task.escalation_level == 1
        assert task.priority == TaskPriority.HIGH
        assert task.status == TaskStatus.ESCALATED

        repeat = await monitor.run()
        assert repeat.escalated == 0
        assert repeat.alerts_created == 0

        second = await monitor.run(now=utc_now() + timedelta(hours=24))
        assert second.alerts_escalated == 1
        alerts = await all_alerts(session)
        assert len(alerts) == 1
        assert alerts[0].alert_type == AlertType.TASK_OVERDUE
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].task_id == task.id
        assert alerts[0].trigger_context["escalation_level"] == 2

        await session.refresh(task)
        assert task.escalation_level == 2
        assert task.priority == TaskPriority.URGENT

    async def test_moving_due_date_never_lowers_level(self, session):
        """Pushing the due date back leaves the level and the single alert as they were"""
        task_service = TaskService(session)
        task = await task_service.create_task(
            TaskCreate(title="Recount reel R-10K", due_at=utc_now() - timedelta(hours=50)),
            "planner",
        )
        task_id = task.id
        monitor = TaskEscalationMonitor(session)
        await monitor.run()
        assert (await task_service.get_task(task_id)).escalation_level == 2

        await task_service.update_task(task_id, TaskUpdate(due_at=utc_now() - timedelta(hours=25)), "planner")
        only_level_one = await monitor.run()

        await task_service.update_task(task_id, TaskUpdate(due_at=utc_now() + timedelta(hours=8)), "planner")
        not_due = await monitor.run()

        assert only_level_one.items_checked == 1
        assert not_due.items_checked == 0
        for result in (only_level_one, not_due):
            assert result.escalated == 0
            assert result.alerts_created == 0
            assert result.alerts_escalated == 0

        task = await task_service.get_task(task_id)
        assert task.escalation_level == 2
        assert task.priority == TaskPriority.URGENT
        alerts = await all_alerts(session)
        assert len(alerts) == 1
        assert alerts[0].severity == AlertSeverity.CRITICAL
        assert alerts[0].trigger_context["escalation_level"] == 2

    async def test_recently_due_task_is_not_escalated(self, session):
        """A task only a couple of hours late stays at level 0"""
        await TaskService(session).create_task(
            TaskCreate(title="Move reels", due_at=utc_now() - timedelta(hours=2)),
            "planner",
        )

        result = await TaskEscalationMonitor(session).run()

        assert result.items_checked == 1
        assert result.escalated == 0
        assert await all_alerts(session) == []

    async def test_closed_tasks_are_ignored(self, session):
        task_service = TaskService(session)
        task = await task_service.create_task(
            TaskCreate(title="Label shelf", due_at=utc_now() - timedelta(hours=72)),
            "planner",
        )
        await task_service.complete_task(task.id, "tech")

        result = await TaskEscalationMonitor(session).run()

        assert result.items_checked == 0
