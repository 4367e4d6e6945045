# partsledger/services/alerts/alert_service.py
import logging
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from partsledger.core.exceptions import NotFoundError, InvalidTransitionError
from partsledger.models.alerts.alert import Alert
from partsledger.models.shared.enums import AlertStatus, AlertType, AlertSeverity, AlertTrigger
from partsledger.schemas.alerts.alert_schema import AlertCreate, AlertStats
from partsledger.schemas.alerts.provenance import dump_provenance
from partsledger.services.common.unit_of_work import atomic
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

OPEN_STATUSES = (AlertStatus.ACTIVE, AlertStatus.ACKNOWLEDGED)

ALERT_TRANSITIONS = {
    AlertStatus.ACTIVE: {AlertStatus.ACKNOWLEDGED, AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.ACKNOWLEDGED: {AlertStatus.RESOLVED, AlertStatus.DISMISSED},
    AlertStatus.RESOLVED: set(),
    AlertStatus.DISMISSED: set(),
}


def stock_alert_key(component_id: int) -> str:
    return f"stock:{component_id}"

def po_overdue_alert_key(purchase_order_id: int) -> str:
    return f"po_overdue:{purchase_order_id}"

def task_overdue_alert_key(task_id: int) -> str:
    return f"task_overdue:{task_id}"

def count_discrepancy_alert_key(stock_record_id: int) -> str:
    return f"count_discrepancy:{stock_record_id}"


class AlertService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Helpers used inside other operations' transactions (no commit)
    # ------------------------------------------------------------------

    async def find_open(self, open_key: str) -> Optional[Alert]:
        result = await self.session.execute(
            select(Alert).where(
                and_(Alert.open_key == open_key, Alert.status.in_(OPEN_STATUSES))
            )
        )
        return result.scalar_one_or_none()

    async def open_system_alert(
        self,
        open_key: str,
        alert_type: AlertType,
        severity: AlertSeverity,
        title: str,
        message: str,
        trigger: AlertTrigger,
        context: Any,
        **links: Optional[int],
    ) -> Tuple[Alert, bool]:
        """Return the open alert for ``open_key``, creating it when none exists"""
        existing = await self.find_open(open_key)
        if existing:
            return existing, False

        alert = Alert(
            alert_type=alert_type,
            severity=severity,
            title=title,
            message=message,
            status=AlertStatus.ACTIVE,
            system_generated=True,
            trigger=trigger,
            trigger_context=dump_provenance(context),
            open_key=open_key,
            created_by="system",
            **links,
        )
        self.session.add(alert)
        await self.session.flush()
        return alert, True

    async def close(self, alert: Alert, status: AlertStatus, actor: str, notes: Optional[str] = None) -> Alert:
        allowed = ALERT_TRANSITIONS[alert.status]
        if status not in allowed:
            raise InvalidTransitionError(
                "Alert", alert.id, alert.status.value, status.value, [s.value for s in allowed]
            )
        alert.status = status
        alert.resolved_by = actor
        alert.resolved_at = utc_now()
        alert.resolution_notes = notes
        alert.open_key = None
        alert.updated_by = actor
        # free the dedup key before anything reuses it in this flush
        await self.session.flush()
        return alert

    async def resolve_open(self, open_key: str, actor: str, notes: Optional[str] = None) -> Optional[Alert]:
        alert = await self.find_open(open_key)
        if alert is None:
            return None
        return await self.close(alert, AlertStatus.RESOLVED, actor, notes)

    # ------------------------------------------------------------------
    # Operator actions
    # ------------------------------------------------------------------

    async def create_alert(self, alert_data: AlertCreate, actor: str) -> Alert:
        async with atomic(self.session, "create alert", "Alert"):
            alert = Alert(
                **alert_data.model_dump(),
                status=AlertStatus.ACTIVE,
                system_generated=False,
                created_by=actor,
            )
            self.session.add(alert)
        logger.info(f"Alert '{alert.title}' created by {actor}")
        return alert

    async def get_alert(self, alert_id: int) -> Alert:
        alert = await self.session.get(Alert, alert_id)
        if not alert or alert.is_deleted:
            raise NotFoundError("Alert", alert_id)
        return alert

    async def acknowledge(self, alert_id: int, actor: str) -> Alert:
        async with atomic(self.session, "acknowledge alert", "Alert", alert_id):
            alert = await self.get_alert(alert_id)
            if alert.status != AlertStatus.ACTIVE:
                raise InvalidTransitionError(
                    "Alert", alert.id, alert.status.value, AlertStatus.ACKNOWLEDGED.value,
                    [s.value for s in ALERT_TRANSITIONS[alert.status]],
                )
            alert.status = AlertStatus.ACKNOWLEDGED
            alert.acknowledged_by = actor
            alert.acknowledged_at = utc_now()
            alert.updated_by = actor
        return alert

    async def resolve(self, alert_id: int, actor: str, notes: Optional[str] = None) -> Alert:
        async with atomic(self.session, "resolve alert", "Alert", alert_id):
            alert = await self.get_alert(alert_id)
            await self.close(alert, AlertStatus.RESOLVED, actor, notes)
        logger.info(f"Alert {alert_id} resolved by {actor}")
        return alert

    async def dismiss(self, alert_id: int, actor: str, notes: Optional[str] = None) -> Alert:
        async with atomic(self.session, "dismiss alert", "Alert", alert_id):
            alert = await self.get_alert(alert_id)
            await self.close(alert, AlertStatus.DISMISSED, actor, notes)
        return alert

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_alerts(
        self,
        page_index: int = 1,
        page_size: int = 100,
        status: Optional[AlertStatus] = None,
        alert_type: Optional[AlertType] = None,
        severity: Optional[AlertSeverity] = None,
        component_id: Optional[int] = None,
        purchase_order_id: Optional[int] = None,
        task_id: Optional[int] = None,
    ) -> Dict[str, Any]:
        conditions = [Alert.is_deleted == False]
        if status:
            conditions.append(Alert.status == status)
        if alert_type:
            conditions.append(Alert.alert_type == alert_type)
        if severity:
            conditions.append(Alert.severity == severity)
        if component_id:
            conditions.append(Alert.component_id == component_id)
        if purchase_order_id:
            conditions.append(Alert.purchase_order_id == purchase_order_id)
        if task_id:
            conditions.append(Alert.task_id == task_id)

        count_result = await self.session.execute(select(func.count(Alert.id)).where(and_(*conditions)))
        total = count_result.scalar() or 0

        result = await self.session.execute(
            select(Alert)
            .where(and_(*conditions))
            .order_by(Alert.created_at.desc(), Alert.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def get_active_alerts(self) -> List[Alert]:
        result = await self.session.execute(
            select(Alert)
            .where(and_(Alert.status == AlertStatus.ACTIVE, Alert.is_deleted == False))
            .order_by(Alert.created_at.desc(), Alert.id.desc())
        )
        return result.scalars().all()

    async def get_stats(self) -> AlertStats:
        open_condition = and_(Alert.status.in_(OPEN_STATUSES), Alert.is_deleted == False)

        by_type = await self.session.execute(
            select(Alert.alert_type, func.count(Alert.id)).where(open_condition).group_by(Alert.alert_type)
        )
        by_severity = await self.session.execute(
            select(Alert.severity, func.count(Alert.id)).where(open_condition).group_by(Alert.severity)
        )
        by_status = await self.session.execute(
            select(Alert.status, func.count(Alert.id)).where(Alert.is_deleted == False).group_by(Alert.status)
        )
        type_counts = {row[0].value: row[1] for row in by_type.all()}
        return AlertStats(
            total_open=sum(type_counts.values()),
            by_type=type_counts,
            by_severity={row[0].value: row[1] for row in by_severity.all()},
            by_status={row[0].value: row[1] for row in by_status.all()},
        )
