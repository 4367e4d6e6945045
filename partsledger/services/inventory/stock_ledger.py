# partsledger/services/inventory/stock_ledger.py
import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_

from partsledger.core.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    NotFoundError,
)
from partsledger.models.inventory.component import Component
from partsledger.models.inventory.inventory_transaction import InventoryTransaction
from partsledger.models.inventory.location import Location
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import ReferenceType, TransactionType
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

ADJUSTABLE_TYPES = {
    TransactionType.ADJUST,
    TransactionType.SCRAP,
    TransactionType.RETURN,
    TransactionType.CONSUME,
}


@dataclass
class LedgerEntry:
    record: StockRecord
    transaction: InventoryTransaction
    previous_qty: int
    new_qty: int


class StockLedger:
    """Sole writer of stock quantities.

    Every change to ``StockRecord.quantity`` or ``reserved_qty`` goes through
    ``_write``, which adds the matching ``InventoryTransaction`` to the same
    session flush. The ledger never commits: the calling service owns the
    transaction and rolls back both the record and its entry together.
    """

    def __init__(self, session: AsyncSession, performed_by: str):
        self.session = session
        self.performed_by = performed_by

    # ------------------------------------------------------------------
    # Record lookup
    # ------------------------------------------------------------------

    async def get_record(self, stock_record_id: int, lock: bool = True) -> StockRecord:
        query = select(StockRecord).where(
            and_(StockRecord.id == stock_record_id, StockRecord.is_deleted == False)
        )
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        record = result.scalar_one_or_none()
        if not record:
            raise NotFoundError("StockRecord", stock_record_id)
        return record

    async def find_record(self, component_id: int, location_id: int, lock: bool = True) -> Optional[StockRecord]:
        query = select(StockRecord).where(
            and_(
                StockRecord.component_id == component_id,
                StockRecord.location_id == location_id,
                StockRecord.is_deleted == False,
            )
        )
        if lock:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def create_record(
        self,
        component_id: int,
        location_id: int,
        minimum_stock: Optional[int] = None,
        maximum_stock: Optional[int] = None,
        cost_per_unit: Optional[Decimal] = None,
    ) -> StockRecord:
        """Insert an empty record; quantities only ever arrive through ``_write``"""
        component = await self.session.get(Component, component_id)
        if not component or component.is_deleted:
            raise NotFoundError("Component", component_id)
        location = await self.session.get(Location, location_id)
        if not location or location.is_deleted:
            raise NotFoundError("Location", location_id)

        record = StockRecord(
            component_id=component_id,
            location_id=location_id,
            quantity=0,
            reserved_qty=0,
            minimum_stock=minimum_stock,
            maximum_stock=maximum_stock,
            cost_per_unit=cost_per_unit,
            created_by=self.performed_by,
            updated_by=self.performed_by,
        )
        record.refresh_derived()
        self.session.add(record)
        await self.session.flush()
        return record

    async def get_or_create_record(self, component_id: int, location_id: int) -> Tuple[StockRecord, bool]:
        record = await self.find_record(component_id, location_id)
        if record:
            return record, False
        return await self.create_record(component_id, location_id), True

    # ------------------------------------------------------------------
    # The single write path
    # ------------------------------------------------------------------

    async def _write(
        self,
        record: StockRecord,
        transaction_type: TransactionType,
        quantity_change: int,
        reserved_change: int = 0,
        reason: Optional[str] = None,
        reference_type: Optional[ReferenceType] = None,
        reference_id: Optional[str] = None,
        to_location_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntry:
        previous_qty = record.quantity or 0
        new_qty = previous_qty + quantity_change
        new_reserved = (record.reserved_qty or 0) + reserved_change

        if new_qty < 0:
            raise InvalidOperationError(
                f"Stock for record {record.id} cannot go negative",
                stock_record_id=record.id,
                previous_qty=previous_qty,
                delta=quantity_change,
            )
        if new_reserved < 0:
            raise InvalidOperationError(
                f"Reservation on record {record.id} cannot go negative",
                stock_record_id=record.id,
                reserved_qty=record.reserved_qty,
                delta=reserved_change,
            )
        if new_reserved > new_qty:
            raise InvalidOperationError(
                f"Stock for record {record.id} cannot drop below its reserved quantity",
                stock_record_id=record.id,
                previous_qty=previous_qty,
                delta=quantity_change,
                reserved_qty=new_reserved,
            )

        record.quantity = new_qty
        record.reserved_qty = new_reserved
        record.refresh_derived()
        record.updated_by = self.performed_by

        transaction = InventoryTransaction(
            transaction_type=transaction_type,
            component_id=record.component_id,
            location_id=record.location_id,
            stock_record_id=record.id,
            to_location_id=to_location_id,
            quantity=quantity_change,
            reserved_change=reserved_change,
            previous_qty=previous_qty,
            new_qty=new_qty,
            reference_type=reference_type,
            reference_id=reference_id,
            reason=reason,
            notes=notes,
            performed_by=self.performed_by,
            timestamp=utc_now(),
            created_by=self.performed_by,
        )
        self.session.add(transaction)
        await self.session.flush()

        return LedgerEntry(record=record, transaction=transaction, previous_qty=previous_qty, new_qty=new_qty)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def adjust(
        self,
        component_id: int,
        location_id: int,
        delta: int,
        reason: str,
        transaction_type: TransactionType = TransactionType.ADJUST,
        reference_type: Optional[ReferenceType] = ReferenceType.MANUAL,
        reference_id: Optional[str] = None,
    ) -> LedgerEntry:
        """Apply a signed delta to a (component, location) record"""
        if transaction_type not in ADJUSTABLE_TYPES:
            raise InvalidOperationError(
                f"Transaction type {transaction_type.value} cannot be used for adjustments",
                transaction_type=transaction_type.value,
            )

        record = await self.find_record(component_id, location_id)
        if record is None:
            if delta < 0:
                raise InvalidOperationError(
                    "Cannot remove stock from a location that holds none",
                    component_id=component_id,
                    location_id=location_id,
                    previous_qty=0,
                    delta=delta,
                )
            record = await self.create_record(component_id, location_id)

        return await self._write(
            record,
            transaction_type,
            quantity_change=delta,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )

    async def set_quantity(self, record: StockRecord, new_quantity: int, reason: str) -> LedgerEntry:
        return await self._write(
            record,
            TransactionType.ADJUST,
            quantity_change=new_quantity - (record.quantity or 0),
            reason=reason,
            reference_type=ReferenceType.MANUAL,
        )

    async def receive(
        self,
        component_id: int,
        location_id: int,
        quantity: int,
        reference_id: str,
        unit_cost: Optional[Decimal] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> LedgerEntry:
        if quantity <= 0:
            raise InvalidOperationError("Received quantity must be positive", quantity=quantity)

        record, _ = await self.get_or_create_record(component_id, location_id)
        if unit_cost is not None:
            record.cost_per_unit = unit_cost

        return await self._write(
            record,
            TransactionType.RECEIVE,
            quantity_change=quantity,
            reason=reason,
            reference_type=ReferenceType.PURCHASE_ORDER,
            reference_id=reference_id,
            notes=notes,
        )

    async def reserve(
        self,
        record: StockRecord,
        quantity: int,
        reason: Optional[str] = None,
        reference_type: Optional[ReferenceType] = ReferenceType.MANUAL,
        reference_id: Optional[str] = None,
    ) -> LedgerEntry:
        if quantity <= 0:
            raise InvalidOperationError("Reserved quantity must be positive", quantity=quantity)
        if quantity > record.available_qty:
            raise InsufficientStockError(
                requested=quantity,
                available=record.available_qty,
                stock_record_id=record.id,
                component_id=record.component_id,
            )
        return await self._write(
            record,
            TransactionType.RESERVE,
            quantity_change=0,
            reserved_change=quantity,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )

    async def release(
        self,
        record: StockRecord,
        quantity: int,
        reason: Optional[str] = None,
        reference_type: Optional[ReferenceType] = ReferenceType.MANUAL,
        reference_id: Optional[str] = None,
    ) -> LedgerEntry:
        """Release up to ``quantity``; the amount is clamped to what is reserved"""
        if quantity < 0:
            raise InvalidOperationError("Released quantity must not be negative", quantity=quantity)
        released = min(quantity, record.reserved_qty or 0)
        return await self._write(
            record,
            TransactionType.UNRESERVE,
            quantity_change=0,
            reserved_change=-released,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )

    async def consume_reserved(
        self,
        record: StockRecord,
        quantity: int,
        reason: Optional[str] = None,
        reference_type: Optional[ReferenceType] = ReferenceType.BUILD_ORDER,
        reference_id: Optional[str] = None,
    ) -> LedgerEntry:
        """Remove reserved stock from the shelf (reservation and quantity drop together)"""
        if quantity <= 0:
            raise InvalidOperationError("Consumed quantity must be positive", quantity=quantity)
        if quantity > (record.reserved_qty or 0):
            raise InsufficientStockError(
                requested=quantity,
                available=record.reserved_qty or 0,
                stock_record_id=record.id,
                component_id=record.component_id,
            )
        return await self._write(
            record,
            TransactionType.CONSUME,
            quantity_change=-quantity,
            reserved_change=-quantity,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
        )

    async def record_count(self, record: StockRecord, counted_qty: int, notes: Optional[str] = None) -> Tuple[LedgerEntry, int]:
        """Overwrite quantity with a physical count; returns (entry, discrepancy)"""
        if counted_qty < 0:
            raise InvalidOperationError("Counted quantity must not be negative", counted_qty=counted_qty)

        previous_qty = record.quantity or 0
        discrepancy = counted_qty - previous_qty

        # the shelf is authoritative; a reservation larger than the count is cut back
        reserved_change = 0
        if (record.reserved_qty or 0) > counted_qty:
            reserved_change = counted_qty - record.reserved_qty

        entry = await self._write(
            record,
            TransactionType.ADJUST,
            quantity_change=discrepancy,
            reserved_change=reserved_change,
            reason=f"Cycle count: {previous_qty} -> {counted_qty}",
            reference_type=ReferenceType.CYCLE_COUNT,
            reference_id=str(record.id),
            notes=notes,
        )
        record.last_counted_at = utc_now()
        record.last_counted_by = self.performed_by
        return entry, discrepancy

    async def transfer(
        self,
        component_id: int,
        from_location_id: int,
        to_location_id: int,
        quantity: int,
        reason: Optional[str] = None,
    ) -> Tuple[LedgerEntry, LedgerEntry]:
        if quantity <= 0:
            raise InvalidOperationError("Transfer quantity must be positive", quantity=quantity)
        if from_location_id == to_location_id:
            raise InvalidOperationError(
                "Source and destination locations must differ",
                location_id=from_location_id,
            )

        # lock both rows in id order
        result = await self.session.execute(
            select(StockRecord)
            .where(
                and_(
                    StockRecord.component_id == component_id,
                    StockRecord.location_id.in_([from_location_id, to_location_id]),
                    StockRecord.is_deleted == False,
                )
            )
            .order_by(StockRecord.id)
            .with_for_update()
        )
        records = {record.location_id: record for record in result.scalars().all()}

        source = records.get(from_location_id)
        available = source.available_qty if source else 0
        if source is None or available < quantity:
            raise InvalidOperationError(
                "Not enough unreserved stock at the source location",
                component_id=component_id,
                location_id=from_location_id,
                requested=quantity,
                available=available,
            )

        destination = records.get(to_location_id)
        if destination is None:
            destination = await self.create_record(component_id, to_location_id)

        transfer_ref = uuid.uuid4().hex[:12]
        outgoing = await self._write(
            source,
            TransactionType.TRANSFER,
            quantity_change=-quantity,
            reason=reason,
            reference_type=ReferenceType.TRANSFER,
            reference_id=transfer_ref,
            to_location_id=to_location_id,
        )
        incoming = await self._write(
            destination,
            TransactionType.TRANSFER,
            quantity_change=quantity,
            reason=reason,
            reference_type=ReferenceType.TRANSFER,
            reference_id=transfer_ref,
            to_location_id=to_location_id,
        )
        return outgoing, incoming
