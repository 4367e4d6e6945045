# partsledger/services/inventory/stock_service.py
import logging
from typing import List, Optional, Dict, Any
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func
from sqlalchemy.orm import selectinload

from partsledger.core.config import settings
from partsledger.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from partsledger.models.inventory.component import Component
from partsledger.models.inventory.location import Location
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import (
    AlertSeverity, AlertTrigger, AlertType, StockStatus,
)
from partsledger.schemas.alerts.provenance import CycleCountContext, dump_provenance
from partsledger.schemas.inventory.stock_schema import (
    ComponentStockTotal,
    LocationStockSummary,
    LowStockReport,
    LowStockReportItem,
    StockAdjustRequest,
    StockCountResult,
    StockMutationResult,
    StockRecordCreate,
    StockThresholdUpdate,
    StockTransferRequest,
    StockTransferResult,
)
from partsledger.services.alerts.alert_service import AlertService, count_discrepancy_alert_key
from partsledger.services.common.unit_of_work import atomic
from partsledger.services.inventory.stock_ledger import LedgerEntry, StockLedger
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService

logger = logging.getLogger(__name__)


def to_mutation_result(entry: LedgerEntry) -> StockMutationResult:
    record = entry.record
    return StockMutationResult(
        stock_record_id=record.id,
        previous_qty=entry.previous_qty,
        new_qty=entry.new_qty,
        reserved_qty=record.reserved_qty,
        available_qty=record.available_qty,
        status=record.status,
        transaction_id=entry.transaction.id,
    )


class StockService:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ------------------------------------------------------------------
    # Record management
    # ------------------------------------------------------------------

    async def create_stock_record(self, data: StockRecordCreate, actor: str) -> StockRecord:
        """Manual entry of a (component, location) record with its opening quantity"""
        if data.minimum_stock is not None and data.maximum_stock is not None and data.maximum_stock < data.minimum_stock:
            raise ValidationError("Maximum stock must not be below minimum stock")

        async with atomic(self.session, "create stock record", "StockRecord"):
            ledger = StockLedger(self.session, actor)
            if await ledger.find_record(data.component_id, data.location_id, lock=False):
                raise DuplicateKeyError(
                    "StockRecord", "component_id/location_id", f"{data.component_id}/{data.location_id}"
                )
            record = await ledger.create_record(
                data.component_id,
                data.location_id,
                minimum_stock=data.minimum_stock,
                maximum_stock=data.maximum_stock,
                cost_per_unit=data.cost_per_unit,
            )
            if data.quantity:
                await ledger.adjust(data.component_id, data.location_id, data.quantity, "Initial stock entry")
        logger.info(f"Stock record {record.id} created by {actor} with {record.quantity} units")
        return await self.get_stock_record(record.id)

    async def update_thresholds(self, stock_record_id: int, data: StockThresholdUpdate, actor: str) -> StockRecord:
        async with atomic(self.session, "update stock thresholds", "StockRecord", stock_record_id):
            record = await StockLedger(self.session, actor).get_record(stock_record_id)
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(record, field, value)

            if record.minimum_stock is not None and record.maximum_stock is not None \
                    and record.maximum_stock < record.minimum_stock:
                raise ValidationError("Maximum stock must not be below minimum stock")

            record.refresh_derived()
            record.updated_by = actor
        return await self.get_stock_record(stock_record_id)

    # ------------------------------------------------------------------
    # Ledger operations
    # ------------------------------------------------------------------

    async def adjust_stock(self, data: StockAdjustRequest, actor: str) -> StockMutationResult:
        async with atomic(self.session, "adjust stock", "StockRecord", f"{data.component_id}/{data.location_id}"):
            entry = await StockLedger(self.session, actor).adjust(
                data.component_id,
                data.location_id,
                data.delta,
                data.reason,
                transaction_type=data.transaction_type,
            )
        logger.info(
            f"Stock adjusted for component {data.component_id} at location {data.location_id}: "
            f"{entry.previous_qty} -> {entry.new_qty} by {actor}"
        )
        return to_mutation_result(entry)

    async def set_quantity(self, stock_record_id: int, quantity: int, reason: str, actor: str) -> StockMutationResult:
        async with atomic(self.session, "set stock quantity", "StockRecord", stock_record_id):
            ledger = StockLedger(self.session, actor)
            record = await ledger.get_record(stock_record_id)
            entry = await ledger.set_quantity(record, quantity, reason)
        return to_mutation_result(entry)

    async def reserve_stock(self, stock_record_id: int, quantity: int, actor: str, reason: Optional[str] = None) -> StockMutationResult:
        async with atomic(self.session, "reserve stock", "StockRecord", stock_record_id):
            ledger = StockLedger(self.session, actor)
            record = await ledger.get_record(stock_record_id)
            entry = await ledger.reserve(record, quantity, reason=reason)
        return to_mutation_result(entry)

    async def release_stock(self, stock_record_id: int, quantity: int, actor: str, reason: Optional[str] = None) -> StockMutationResult:
        async with atomic(self.session, "release stock", "StockRecord", stock_record_id):
            ledger = StockLedger(self.session, actor)
            record = await ledger.get_record(stock_record_id)
            entry = await ledger.release(record, quantity, reason=reason)
        return to_mutation_result(entry)

    async def record_count(self, stock_record_id: int, counted_qty: int, actor: str, notes: Optional[str] = None) -> StockCountResult:
        alert_id = None
        async with atomic(self.session, "record cycle count", "StockRecord", stock_record_id):
            ledger = StockLedger(self.session, actor)
            record = await ledger.get_record(stock_record_id)
            entry, discrepancy = await ledger.record_count(record, counted_qty, notes=notes)

            threshold = settings.COUNT_DISCREPANCY_ALERT_THRESHOLD
            if threshold > 0 and abs(discrepancy) >= threshold:
                alert = await self._flag_count_discrepancy(record, entry, discrepancy, actor)
                alert_id = alert.id

        logger.info(
            f"Cycle count on stock record {stock_record_id} by {actor}: "
            f"{entry.previous_qty} -> {entry.new_qty} (discrepancy {discrepancy})"
        )
        result = to_mutation_result(entry)
        return StockCountResult(**result.model_dump(), discrepancy=discrepancy, alert_id=alert_id)

    async def _flag_count_discrepancy(self, record: StockRecord, entry: LedgerEntry, discrepancy: int, actor: str):
        alert_service = AlertService(self.session)
        context = CycleCountContext(
            stock_record_id=record.id,
            previous_qty=entry.previous_qty,
            counted_qty=entry.new_qty,
            discrepancy=discrepancy,
            counted_by=actor,
        )
        message = (
            f"Cycle count at location {record.location_id} found {entry.new_qty} units, "
            f"system expected {entry.previous_qty} ({discrepancy:+d})"
        )
        alert, created = await alert_service.open_system_alert(
            count_discrepancy_alert_key(record.id),
            AlertType.COUNT_DISCREPANCY,
            AlertSeverity.WARNING,
            "Inventory count discrepancy",
            message,
            AlertTrigger.CYCLE_COUNT,
            context,
            component_id=record.component_id,
            location_id=record.location_id,
        )
        if not created:
            # a later count replaces the figures on the open alert
            alert.message = message
            alert.trigger_context = dump_provenance(context)
        return alert

    async def transfer_stock(self, data: StockTransferRequest, actor: str) -> StockTransferResult:
        async with atomic(self.session, "transfer stock", "StockRecord", f"{data.component_id}/{data.from_location_id}"):
            outgoing, incoming = await StockLedger(self.session, actor).transfer(
                data.component_id,
                data.from_location_id,
                data.to_location_id,
                data.quantity,
                reason=data.reason,
            )
        logger.info(
            f"Transferred {data.quantity} of component {data.component_id} "
            f"from location {data.from_location_id} to {data.to_location_id} by {actor}"
        )
        return StockTransferResult(source=to_mutation_result(outgoing), destination=to_mutation_result(incoming))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_stock_record(self, stock_record_id: int) -> StockRecord:
        result = await self.session.execute(
            select(StockRecord)
            .options(selectinload(StockRecord.component), selectinload(StockRecord.location))
            .where(and_(StockRecord.id == stock_record_id, StockRecord.is_deleted == False))
            .execution_options(populate_existing=True)
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("StockRecord", stock_record_id)
        return record

    async def get_stock_by_component_location(self, component_id: int, location_id: int) -> StockRecord:
        result = await self.session.execute(
            select(StockRecord)
            .options(selectinload(StockRecord.component), selectinload(StockRecord.location))
            .where(and_(
                StockRecord.component_id == component_id,
                StockRecord.location_id == location_id,
                StockRecord.is_deleted == False,
            ))
        )
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("StockRecord", f"{component_id}/{location_id}")
        return record

    async def get_stock_records(
        self,
        page_index: int = 1,
        page_size: int = 100,
        component_id: Optional[int] = None,
        location_id: Optional[int] = None,
        status: Optional[StockStatus] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [StockRecord.is_deleted == False]
        if component_id:
            conditions.append(StockRecord.component_id == component_id)
        if location_id:
            conditions.append(StockRecord.location_id == location_id)
        if status:
            conditions.append(StockRecord.status == status)

        base = select(StockRecord).where(and_(*conditions))
        if search:
            base = base.join(Component, Component.id == StockRecord.component_id).where(
                or_(
                    Component.part_number.ilike(f"%{search}%"),
                    Component.name.ilike(f"%{search}%"),
                )
            )

        count_result = await self.session.execute(select(func.count()).select_from(base.subquery()))
        total = count_result.scalar() or 0

        result = await self.session.execute(
            base.options(selectinload(StockRecord.component), selectinload(StockRecord.location))
            .order_by(StockRecord.id)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def get_component_total(self, component_id: int) -> ComponentStockTotal:
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(StockRecord.quantity), 0),
                func.coalesce(func.sum(StockRecord.reserved_qty), 0),
                func.coalesce(func.sum(StockRecord.available_qty), 0),
                func.count(StockRecord.id),
            ).where(and_(StockRecord.component_id == component_id, StockRecord.is_deleted == False))
        )
        quantity, reserved, available, locations = result.one()
        return ComponentStockTotal(
            component_id=component_id,
            total_quantity=int(quantity),
            total_reserved=int(reserved),
            total_available=int(available),
            location_count=int(locations),
        )

    async def get_low_stock_report(self) -> LowStockReport:
        result = await self.session.execute(
            select(StockRecord, Component, Location)
            .join(Component, Component.id == StockRecord.component_id)
            .join(Location, Location.id == StockRecord.location_id)
            .where(and_(
                StockRecord.is_deleted == False,
                StockRecord.status.in_([StockStatus.LOW_STOCK, StockStatus.OUT_OF_STOCK]),
            ))
            .order_by(StockRecord.quantity, StockRecord.id)
        )
        po_service = PurchaseOrderService(self.session)
        items = []
        for record, component, location in result.all():
            items.append(LowStockReportItem(
                stock_record_id=record.id,
                component_id=component.id,
                part_number=component.part_number,
                component_name=component.name,
                location_id=location.id,
                location_code=location.code,
                quantity=record.quantity,
                minimum_stock=record.minimum_stock,
                status=record.status,
                incoming_qty=await po_service.get_incoming_quantity(component.id),
            ))
        return LowStockReport(count=len(items), items=items)

    async def get_location_summary(self, location_id: int) -> LocationStockSummary:
        location = await self.session.get(Location, location_id)
        if not location or location.is_deleted:
            raise NotFoundError("Location", location_id)

        result = await self.session.execute(
            select(StockRecord).where(and_(
                StockRecord.location_id == location_id,
                StockRecord.is_deleted == False,
            ))
        )
        records = result.scalars().all()
        return LocationStockSummary(
            location_id=location_id,
            record_count=len(records),
            total_units=sum(r.quantity for r in records),
            low_stock_count=sum(1 for r in records if r.status == StockStatus.LOW_STOCK),
            out_of_stock_count=sum(1 for r in records if r.status == StockStatus.OUT_OF_STOCK),
            total_value=sum(
                (Decimal(r.cost_per_unit) * r.quantity for r in records if r.cost_per_unit is not None),
                Decimal('0'),
            ),
        )
