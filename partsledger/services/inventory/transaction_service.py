# partsledger/services/inventory/transaction_service.py
import logging
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from partsledger.models.inventory.inventory_transaction import InventoryTransaction
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import TransactionType, ReferenceType
from partsledger.schemas.inventory.transaction_schema import ReplayResult

logger = logging.getLogger(__name__)


class TransactionService:
    """Read side of the append-only inventory ledger"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_transactions(
        self,
        page_index: int = 1,
        page_size: int = 100,
        component_id: Optional[int] = None,
        location_id: Optional[int] = None,
        transaction_type: Optional[TransactionType] = None,
        reference_type: Optional[ReferenceType] = None,
        reference_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = []
        if component_id:
            conditions.append(InventoryTransaction.component_id == component_id)
        if location_id:
            conditions.append(InventoryTransaction.location_id == location_id)
        if transaction_type:
            conditions.append(InventoryTransaction.transaction_type == transaction_type)
        if reference_type:
            conditions.append(InventoryTransaction.reference_type == reference_type)
        if reference_id:
            conditions.append(InventoryTransaction.reference_id == reference_id)

        count_query = select(func.count(InventoryTransaction.id))
        query = select(InventoryTransaction)
        if conditions:
            count_query = count_query.where(and_(*conditions))
            query = query.where(and_(*conditions))

        count_result = await self.session.execute(count_query)
        result = await self.session.execute(
            query.order_by(InventoryTransaction.timestamp.desc(), InventoryTransaction.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": count_result.scalar() or 0,
            "data": result.scalars().all(),
        }

    async def get_by_reference(self, reference_type: ReferenceType, reference_id: str) -> List[InventoryTransaction]:
        result = await self.session.execute(
            select(InventoryTransaction)
            .where(and_(
                InventoryTransaction.reference_type == reference_type,
                InventoryTransaction.reference_id == reference_id,
            ))
            .order_by(InventoryTransaction.timestamp, InventoryTransaction.id)
        )
        return result.scalars().all()

    async def get_history(self, component_id: int, location_id: int) -> List[InventoryTransaction]:
        """All entries for one (component, location) in replay order"""
        result = await self.session.execute(
            select(InventoryTransaction)
            .where(and_(
                InventoryTransaction.component_id == component_id,
                InventoryTransaction.location_id == location_id,
            ))
            .order_by(InventoryTransaction.timestamp, InventoryTransaction.id)
        )
        return result.scalars().all()

    async def replay_history(self, component_id: int, location_id: int) -> ReplayResult:
        """Fold the ledger and compare it with the live stock record"""
        entries = await self.get_history(component_id, location_id)

        quantity = 0
        reserved = 0
        breaks = []
        for entry in entries:
            if entry.previous_qty != quantity:
                breaks.append(entry.id)
            quantity = entry.previous_qty + entry.quantity
            reserved += entry.reserved_change
            if quantity != entry.new_qty:
                breaks.append(entry.id)
            quantity = entry.new_qty

        record_result = await self.session.execute(
            select(StockRecord).where(and_(
                StockRecord.component_id == component_id,
                StockRecord.location_id == location_id,
            ))
        )
        record = record_result.scalar_one_or_none()
        actual_quantity = record.quantity if record else None
        actual_reserved = record.reserved_qty if record else None

        consistent = not breaks and (
            (record is None and not entries)
            or (record is not None and actual_quantity == quantity and actual_reserved == reserved)
        )
        if not consistent:
            logger.warning(
                f"Ledger replay mismatch for component {component_id} at location {location_id}: "
                f"replayed {quantity}/{reserved}, actual {actual_quantity}/{actual_reserved}"
            )

        return ReplayResult(
            component_id=component_id,
            location_id=location_id,
            entry_count=len(entries),
            replayed_quantity=quantity,
            replayed_reserved=reserved,
            actual_quantity=actual_quantity,
            actual_reserved=actual_reserved,
            chain_intact=not breaks,
            consistent=consistent,
            breaks=sorted(set(breaks)),
        )
