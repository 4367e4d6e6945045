# partsledger/services/monitor/po_monitor.py
import logging
from datetime import datetime
from typing import List
from sqlalchemy import select, and_

from partsledger.core.config import settings
from partsledger.models.purchase.purchase_order import PurchaseOrder
from partsledger.models.shared.enums import AlertSeverity, AlertTrigger, AlertType
from partsledger.schemas.alerts.provenance import PurchaseOrderOverdueContext, dump_provenance
from partsledger.schemas.monitor.sweep_schema import SweepResult
from partsledger.services.alerts.alert_service import AlertService, po_overdue_alert_key
from partsledger.services.monitor.base_monitor import BaseMonitor, CREATED, ESCALATED, UNCHANGED
from partsledger.services.notification.notification_service import NotificationService
from partsledger.services.purchase.purchase_order_service import TERMINAL_STATUSES
from partsledger.utils.date_time import days_between

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "po-overdue-monitor"


class PurchaseOrderMonitor(BaseMonitor):
    """Opens one overdue alert per late purchase order"""

    sweep_name = "po_overdue"

    async def candidate_ids(self, now: datetime) -> List[int]:
        result = await self.session.execute(
            select(PurchaseOrder.id)
            .where(and_(
                PurchaseOrder.status.notin_(TERMINAL_STATUSES),
                PurchaseOrder.expected_delivery.isnot(None),
                PurchaseOrder.expected_delivery < now.date(),
                PurchaseOrder.is_deleted == False,
            ))
            .order_by(PurchaseOrder.id)
        )
        return [row[0] for row in result.all()]

    async def evaluate(self, po_id: int, now: datetime, result: SweepResult) -> str:
        po = await self.session.get(PurchaseOrder, po_id)
        if po is None or po.status in TERMINAL_STATUSES:
            return UNCHANGED

        days_overdue = days_between(po.expected_delivery, now)
        critical = days_overdue > settings.PO_OVERDUE_CRITICAL_DAYS
        severity = AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING
        context = PurchaseOrderOverdueContext(
            po_number=po.po_number,
            po_status=po.status.value,
            expected_delivery=po.expected_delivery,
            days_overdue=days_overdue,
        )
        message = (
            f"Purchase order {po.po_number} ({po.status.value}) was expected on "
            f"{po.expected_delivery.isoformat()} and is {days_overdue} day(s) overdue"
        )

        alert_service = AlertService(self.session)
        notifications = NotificationService(self.session)
        existing = await alert_service.find_open(po_overdue_alert_key(po_id))

        if existing:
            if critical and existing.severity != AlertSeverity.CRITICAL:
                existing.severity = AlertSeverity.CRITICAL
                existing.message = message
                existing.trigger_context = dump_provenance(context)
                existing.updated_by = SYSTEM_ACTOR
                await self.session.flush()
                await notifications.enqueue_for_alert(existing, requires_escalation=True)
                logger.info(f"Overdue alert for {po.po_number} raised to critical")
                return ESCALATED
            return UNCHANGED

        alert, _ = await alert_service.open_system_alert(
            po_overdue_alert_key(po_id),
            AlertType.PO_OVERDUE,
            severity,
            f"Purchase order overdue: {po.po_number}",
            message,
            AlertTrigger.PO_OVERDUE_MONITOR,
            context,
            purchase_order_id=po_id,
        )
        await notifications.enqueue_for_alert(alert, requires_escalation=critical)
        return CREATED
