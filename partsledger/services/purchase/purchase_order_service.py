# partsledger/services/purchase/purchase_order_service.py
import logging
from typing import Optional, List, Dict, Any
from decimal import Decimal, ROUND_HALF_UP
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func

from partsledger.core.exceptions import (
    DuplicateKeyError,
    InvalidStateError,
    InvalidTransitionError,
    NotFoundError,
)
from partsledger.models.inventory.component import Component
from partsledger.models.purchase.purchase_order import PurchaseOrder
from partsledger.models.purchase.purchase_order_line import PurchaseOrderLine
from partsledger.models.purchase.supplier import Supplier
from partsledger.models.shared.enums import PurchaseOrderStatus, PurchaseOrderLineStatus
from partsledger.schemas.purchase.purchase_order_schema import (
    IncomingQuantity,
    PurchaseOrderCreate,
    PurchaseOrderLineCreate,
    PurchaseOrderUpdate,
)
from partsledger.services.common.sequence_service import SequenceService
from partsledger.services.common.unit_of_work import atomic
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

PO_TRANSITIONS = {
    PurchaseOrderStatus.DRAFT: {PurchaseOrderStatus.SUBMITTED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.SUBMITTED: {PurchaseOrderStatus.CONFIRMED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.CONFIRMED: {PurchaseOrderStatus.SHIPPED, PurchaseOrderStatus.CANCELLED},
    PurchaseOrderStatus.SHIPPED: {PurchaseOrderStatus.PARTIAL_RECEIVED, PurchaseOrderStatus.RECEIVED},
    PurchaseOrderStatus.PARTIAL_RECEIVED: {PurchaseOrderStatus.RECEIVED},
    PurchaseOrderStatus.RECEIVED: set(),
    PurchaseOrderStatus.CANCELLED: set(),
}

TERMINAL_STATUSES = (PurchaseOrderStatus.RECEIVED, PurchaseOrderStatus.CANCELLED)

# statuses whose outstanding lines count as stock on the way
INCOMING_STATUSES = (
    PurchaseOrderStatus.SUBMITTED,
    PurchaseOrderStatus.CONFIRMED,
    PurchaseOrderStatus.SHIPPED,
    PurchaseOrderStatus.PARTIAL_RECEIVED,
)


def line_total(quantity: int, unit_price: Decimal) -> Decimal:
    return (Decimal(quantity) * Decimal(unit_price)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class PurchaseOrderService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate_po_number(self) -> str:
        """Next ``PO-<year>-<seq>`` number; the counter is bumped in the caller's transaction"""
        year = utc_now().year
        sequence_service = SequenceService(self.session)
        while True:
            sequence = await sequence_service.next_value(f"po:{year}")
            po_number = f"PO-{year}-{sequence:03d}"
            # skip numbers taken by manually numbered orders
            if not await self._po_number_exists(po_number):
                return po_number

    async def _po_number_exists(self, po_number: str) -> bool:
        result = await self.session.execute(
            select(PurchaseOrder.id).where(PurchaseOrder.po_number == po_number)
        )
        return result.first() is not None

    async def _get_for_update(self, po_id: int) -> PurchaseOrder:
        result = await self.session.execute(
            select(PurchaseOrder)
            .where(and_(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted == False))
            .with_for_update()
        )
        purchase_order = result.scalar_one_or_none()
        if not purchase_order:
            raise NotFoundError("PurchaseOrder", po_id)
        return purchase_order

    async def _build_line(self, line_data: PurchaseOrderLineCreate, actor: str) -> PurchaseOrderLine:
        component = await self.session.get(Component, line_data.component_id)
        if not component or component.is_deleted:
            raise NotFoundError("Component", line_data.component_id)

        return PurchaseOrderLine(
            component_id=line_data.component_id,
            supplier_part_number=line_data.supplier_part_number,
            quantity_ordered=line_data.quantity_ordered,
            quantity_received=0,
            unit_price=line_data.unit_price,
            line_total=line_total(line_data.quantity_ordered, line_data.unit_price),
            status=PurchaseOrderLineStatus.PENDING,
            notes=line_data.notes,
            created_by=actor,
        )

    async def create_purchase_order(self, po_data: PurchaseOrderCreate, actor: str) -> PurchaseOrder:
        """Create a draft purchase order, optionally with its first lines"""
        async with atomic(self.session, "create purchase order", "PurchaseOrder"):
            supplier = await self.session.get(Supplier, po_data.supplier_id)
            if not supplier or supplier.is_deleted:
                raise NotFoundError("Supplier", po_data.supplier_id)

            if po_data.po_number:
                if await self._po_number_exists(po_data.po_number):
                    raise DuplicateKeyError("PurchaseOrder", "po_number", po_data.po_number)
                po_number = po_data.po_number
            else:
                po_number = await self.generate_po_number()

            purchase_order = PurchaseOrder(
                po_number=po_number,
                supplier_id=po_data.supplier_id,
                status=PurchaseOrderStatus.DRAFT,
                expected_delivery=po_data.expected_delivery,
                tracking_number=po_data.tracking_number,
                shipping_cost=po_data.shipping_cost,
                tax_amount=po_data.tax_amount,
                notes=po_data.notes,
                created_by=actor,
                updated_by=actor,
            )
            for line_data in po_data.lines:
                purchase_order.lines.append(await self._build_line(line_data, actor))
            purchase_order.recompute_totals()

            self.session.add(purchase_order)

        logger.info(f"Purchase order {purchase_order.po_number} created by {actor}")
        return await self.get_purchase_order(purchase_order.id)

    async def add_line(self, po_id: int, line_data: PurchaseOrderLineCreate, actor: str) -> PurchaseOrder:
        async with atomic(self.session, "add purchase order line", "PurchaseOrder", po_id):
            purchase_order = await self._get_for_update(po_id)
            if purchase_order.status != PurchaseOrderStatus.DRAFT:
                raise InvalidStateError(
                    "PurchaseOrder", po_id, purchase_order.status.value, [PurchaseOrderStatus.DRAFT.value]
                )
            purchase_order.lines.append(await self._build_line(line_data, actor))
            purchase_order.recompute_totals()
            purchase_order.updated_by = actor
        return await self.get_purchase_order(po_id)

    async def remove_line(self, po_id: int, line_id: int, actor: str) -> PurchaseOrder:
        async with atomic(self.session, "remove purchase order line", "PurchaseOrder", po_id):
            purchase_order = await self._get_for_update(po_id)
            if purchase_order.status != PurchaseOrderStatus.DRAFT:
                raise InvalidStateError(
                    "PurchaseOrder", po_id, purchase_order.status.value, [PurchaseOrderStatus.DRAFT.value]
                )
            line = next((l for l in purchase_order.lines if l.id == line_id), None)
            if line is None:
                raise NotFoundError("PurchaseOrderLine", line_id)
            purchase_order.lines.remove(line)
            purchase_order.recompute_totals()
            purchase_order.updated_by = actor
        return await self.get_purchase_order(po_id)

    async def update_purchase_order(self, po_id: int, po_data: PurchaseOrderUpdate, actor: str) -> PurchaseOrder:
        """Patch update: only fields present in the request are touched"""
        async with atomic(self.session, "update purchase order", "PurchaseOrder", po_id):
            purchase_order = await self._get_for_update(po_id)
            if purchase_order.status in TERMINAL_STATUSES:
                raise InvalidStateError(
                    "PurchaseOrder", po_id, purchase_order.status.value,
                    [s.value for s in PurchaseOrderStatus if s not in TERMINAL_STATUSES],
                )
            for field, value in po_data.model_dump(exclude_unset=True).items():
                if field in ("shipping_cost", "tax_amount") and value is None:
                    value = Decimal('0')
                setattr(purchase_order, field, value)
            purchase_order.recompute_totals()
            purchase_order.updated_by = actor
        return await self.get_purchase_order(po_id)

    async def update_status(
        self,
        po_id: int,
        new_status: PurchaseOrderStatus,
        actor: str,
        notes: Optional[str] = None,
    ) -> PurchaseOrder:
        async with atomic(self.session, "update purchase order status", "PurchaseOrder", po_id):
            purchase_order = await self._get_for_update(po_id)
            current = purchase_order.status
            allowed = PO_TRANSITIONS[current]
            if new_status not in allowed:
                raise InvalidTransitionError(
                    "PurchaseOrder", po_id, current.value, new_status.value, [s.value for s in allowed]
                )

            now = utc_now()
            purchase_order.status = new_status
            if new_status == PurchaseOrderStatus.SUBMITTED:
                purchase_order.order_date = now
            elif new_status == PurchaseOrderStatus.CONFIRMED:
                purchase_order.approved_by = actor
                purchase_order.approved_at = now
            elif new_status == PurchaseOrderStatus.RECEIVED:
                purchase_order.actual_delivery = now
            elif new_status == PurchaseOrderStatus.CANCELLED:
                for line in purchase_order.lines:
                    if line.status != PurchaseOrderLineStatus.RECEIVED:
                        line.status = PurchaseOrderLineStatus.CANCELLED

            if notes:
                purchase_order.notes = append_note(purchase_order.notes, notes, actor)
            purchase_order.updated_by = actor

        logger.info(f"Purchase order {purchase_order.po_number}: {current.value} -> {new_status.value} by {actor}")
        return await self.get_purchase_order(po_id)

    async def get_purchase_order(self, po_id: int) -> PurchaseOrder:
        result = await self.session.execute(
            select(PurchaseOrder)
            .where(and_(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted == False))
            .execution_options(populate_existing=True)
        )
        purchase_order = result.scalar_one_or_none()
        if not purchase_order:
            raise NotFoundError("PurchaseOrder", po_id)
        return purchase_order

    async def get_by_po_number(self, po_number: str) -> PurchaseOrder:
        result = await self.session.execute(
            select(PurchaseOrder).where(and_(PurchaseOrder.po_number == po_number, PurchaseOrder.is_deleted == False))
        )
        purchase_order = result.scalar_one_or_none()
        if not purchase_order:
            raise NotFoundError("PurchaseOrder", po_number)
        return purchase_order

    async def get_purchase_orders(
        self,
        page_index: int = 1,
        page_size: int = 100,
        status: Optional[PurchaseOrderStatus] = None,
        supplier_id: Optional[int] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [PurchaseOrder.is_deleted == False]
        if status:
            conditions.append(PurchaseOrder.status == status)
        if supplier_id:
            conditions.append(PurchaseOrder.supplier_id == supplier_id)
        if search:
            conditions.append(or_(
                PurchaseOrder.po_number.ilike(f"%{search}%"),
                PurchaseOrder.tracking_number.ilike(f"%{search}%"),
                PurchaseOrder.notes.ilike(f"%{search}%"),
            ))

        count_result = await self.session.execute(select(func.count(PurchaseOrder.id)).where(and_(*conditions)))
        total = count_result.scalar() or 0

        result = await self.session.execute(
            select(PurchaseOrder)
            .where(and_(*conditions))
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def get_receivable_orders(self) -> List[PurchaseOrder]:
        result = await self.session.execute(
            select(PurchaseOrder)
            .where(and_(
                PurchaseOrder.status.in_([
                    PurchaseOrderStatus.CONFIRMED,
                    PurchaseOrderStatus.SHIPPED,
                    PurchaseOrderStatus.PARTIAL_RECEIVED,
                ]),
                PurchaseOrder.is_deleted == False,
            ))
            .order_by(PurchaseOrder.expected_delivery, PurchaseOrder.id)
        )
        return result.scalars().all()

    async def get_incoming_quantity(self, component_id: int) -> int:
        """Units still outstanding on open purchase orders for a component"""
        result = await self.session.execute(
            select(func.coalesce(func.sum(PurchaseOrderLine.quantity_ordered - PurchaseOrderLine.quantity_received), 0))
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
            .where(and_(
                PurchaseOrderLine.component_id == component_id,
                PurchaseOrderLine.status != PurchaseOrderLineStatus.CANCELLED,
                PurchaseOrder.status.in_(INCOMING_STATUSES),
                PurchaseOrder.is_deleted == False,
            ))
        )
        return int(result.scalar() or 0)

    async def get_incoming_quantities(self, component_ids: List[int]) -> Dict[int, int]:
        if not component_ids:
            return {}
        result = await self.session.execute(
            select(
                PurchaseOrderLine.component_id,
                func.sum(PurchaseOrderLine.quantity_ordered - PurchaseOrderLine.quantity_received),
            )
            .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
            .where(and_(
                PurchaseOrderLine.component_id.in_(component_ids),
                PurchaseOrderLine.status != PurchaseOrderLineStatus.CANCELLED,
                PurchaseOrder.status.in_(INCOMING_STATUSES),
                PurchaseOrder.is_deleted == False,
            ))
            .group_by(PurchaseOrderLine.component_id)
        )
        return {component_id: int(total or 0) for component_id, total in result.all()}

    async def get_incoming_summary(self, component_id: int) -> IncomingQuantity:
        count_result = await self.session.execute(
            select(func.count(func.distinct(PurchaseOrder.id)))
            .join(PurchaseOrderLine, PurchaseOrder.id == PurchaseOrderLine.purchase_order_id)
            .where(and_(
                PurchaseOrderLine.component_id == component_id,
                PurchaseOrder.status.in_(INCOMING_STATUSES),
                PurchaseOrder.is_deleted == False,
            ))
        )
        return IncomingQuantity(
            component_id=component_id,
            incoming_qty=await self.get_incoming_quantity(component_id),
            purchase_order_count=count_result.scalar() or 0,
        )


def append_note(existing: Optional[str], note: str, actor: str) -> str:
    stamped = f"[{utc_now().strftime('%Y-%m-%d %H:%M')} {actor}] {note}"
    return f"{existing}\n{stamped}" if existing else stamped
