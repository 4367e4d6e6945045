# partsledger/services/monitor/stock_monitor.py
import logging
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import select, and_

from partsledger.models.inventory.component import Component
from partsledger.models.inventory.location import Location
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import AlertSeverity, AlertStatus, AlertTrigger, AlertType
from partsledger.schemas.alerts.provenance import StockMonitorContext, dump_provenance
from partsledger.schemas.monitor.sweep_schema import SweepResult
from partsledger.services.alerts.alert_service import AlertService, stock_alert_key
from partsledger.services.monitor.base_monitor import BaseMonitor, CREATED, ESCALATED, RESOLVED, UNCHANGED
from partsledger.services.notification.notification_service import NotificationService
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "stock-monitor"


class StockMonitor(BaseMonitor):
    """Keeps one low/out-of-stock alert per component in step with its stock.

    The component's worst thresholded record decides: out of stock beats low
    stock, and a component with no low record is healthy.
    """

    sweep_name = "stock"

    def __init__(self, session):
        super().__init__(session)
        self._incoming: Dict[int, int] = {}

    async def candidate_ids(self, now: datetime) -> List[int]:
        result = await self.session.execute(
            select(StockRecord.component_id)
            .where(and_(StockRecord.minimum_stock.isnot(None), StockRecord.is_deleted == False))
            .distinct()
            .order_by(StockRecord.component_id)
        )
        return [row[0] for row in result.all()]

    async def _worst_record(self, component_id: int) -> Optional[StockRecord]:
        result = await self.session.execute(
            select(StockRecord)
            .where(and_(
                StockRecord.component_id == component_id,
                StockRecord.minimum_stock.isnot(None),
                StockRecord.is_deleted == False,
            ))
            .order_by(StockRecord.id)
        )
        records = result.scalars().all()
        out = [r for r in records if r.quantity <= 0]
        if out:
            return out[0]
        low = [r for r in records if r.quantity <= r.minimum_stock]
        if low:
            return min(low, key=lambda r: (r.quantity - r.minimum_stock, r.id))
        return None

    async def prepare(self, entity_ids: List[int], now: datetime) -> None:
        """Incoming quantities only enrich the message; a failure here never blocks the sweep"""
        try:
            self._incoming = await PurchaseOrderService(self.session).get_incoming_quantities(entity_ids)
        except Exception as e:
            await self.session.rollback()
            self._incoming = {}
            logger.warning(f"Could not compute incoming quantities: {str(e)}")

    async def evaluate(self, component_id: int, now: datetime, result: SweepResult) -> str:
        alert_service = AlertService(self.session)
        open_key = stock_alert_key(component_id)
        existing = await alert_service.find_open(open_key)
        record = await self._worst_record(component_id)

        if record is None:
            if existing:
                await alert_service.close(existing, AlertStatus.RESOLVED, SYSTEM_ACTOR, "Stock level restored")
                return RESOLVED
            return UNCHANGED

        component = await self.session.get(Component, component_id)
        location = await self.session.get(Location, record.location_id)
        incoming = self._incoming.get(component_id, 0)
        context = StockMonitorContext(
            stock_record_id=record.id,
            location_id=record.location_id,
            quantity=record.quantity,
            minimum_stock=record.minimum_stock,
            incoming_qty=incoming,
        )
        incoming_note = f" ({incoming} incoming on open POs)" if incoming else ""
        notifications = NotificationService(self.session)

        if record.quantity <= 0:
            if existing and existing.alert_type == AlertType.OUT_OF_STOCK:
                return UNCHANGED
            if existing:
                await alert_service.close(existing, AlertStatus.RESOLVED, SYSTEM_ACTOR, "Superseded by out-of-stock alert")
            alert, _ = await alert_service.open_system_alert(
                open_key,
                AlertType.OUT_OF_STOCK,
                AlertSeverity.CRITICAL,
                f"Out of stock: {component.part_number}",
                f"{component.name} ({component.part_number}) is out of stock at {location.code}{incoming_note}",
                AlertTrigger.STOCK_MONITOR,
                context,
                component_id=component_id,
                location_id=record.location_id,
            )
            await notifications.enqueue_for_alert(alert, requires_escalation=True)
            return CREATED

        critical = record.quantity <= record.minimum_stock // 2
        severity = AlertSeverity.CRITICAL if critical else AlertSeverity.WARNING
        message = (
            f"{component.name} ({component.part_number}) is low at {location.code}: "
            f"{record.quantity} on hand, minimum {record.minimum_stock}{incoming_note}"
        )

        if existing:
            # an open out-of-stock alert stays until stock is healthy again
            if existing.alert_type == AlertType.LOW_STOCK and critical and existing.severity != AlertSeverity.CRITICAL:
                existing.severity = AlertSeverity.CRITICAL
                existing.message = message
                existing.trigger_context = dump_provenance(context)
                existing.updated_by = SYSTEM_ACTOR
                await self.session.flush()
                await notifications.enqueue_for_alert(existing, requires_escalation=True)
                return ESCALATED
            return UNCHANGED

        alert, _ = await alert_service.open_system_alert(
            open_key,
            AlertType.LOW_STOCK,
            severity,
            f"Low stock: {component.part_number}",
            message,
            AlertTrigger.STOCK_MONITOR,
            context,
            component_id=component_id,
            location_id=record.location_id,
        )
        await notifications.enqueue_for_alert(alert, requires_escalation=critical)
        return CREATED
