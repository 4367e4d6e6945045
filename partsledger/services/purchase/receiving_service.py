# partsledger/services/purchase/receiving_service.py
import logging
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from partsledger.core.exceptions import (
    InvalidOperationError,
    InvalidStateError,
    NotFoundError,
    OverReceiptError,
    ValidationError,
)
from partsledger.models.inventory.component import Component
from partsledger.models.inventory.location import Location
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.purchase.purchase_order import PurchaseOrder
from partsledger.models.shared.enums import PurchaseOrderStatus, PurchaseOrderLineStatus
from partsledger.schemas.purchase.receiving_schema import (
    ExistingStockLocation,
    ReceiptLineResult,
    ReceiveShipmentRequest,
    ReceiveShipmentResult,
    ReceivingDetails,
    ReceivingLineDetail,
)
from partsledger.services.alerts.alert_service import AlertService, stock_alert_key, po_overdue_alert_key
from partsledger.services.common.unit_of_work import atomic
from partsledger.services.inventory.stock_ledger import StockLedger
from partsledger.services.purchase.purchase_order_service import append_note
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

RECEIVABLE_STATUSES = (
    PurchaseOrderStatus.CONFIRMED,
    PurchaseOrderStatus.SHIPPED,
    PurchaseOrderStatus.PARTIAL_RECEIVED,
)


class ReceivingService:
    """Books incoming shipments against purchase orders.

    A shipment is one transaction: line quantities, stock records, ledger
    entries, alert resolution and the PO status either all land or none do.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def receive_shipment(
        self,
        po_id: int,
        request: ReceiveShipmentRequest,
        received_by: str,
    ) -> ReceiveShipmentResult:
        if not request.receipts:
            raise ValidationError("At least one receipt line is required")

        async with atomic(self.session, "receive shipment", "PurchaseOrder", po_id):
            result = await self.session.execute(
                select(PurchaseOrder)
                .where(and_(PurchaseOrder.id == po_id, PurchaseOrder.is_deleted == False))
                .with_for_update()
            )
            purchase_order = result.scalar_one_or_none()
            if not purchase_order:
                raise NotFoundError("PurchaseOrder", po_id)
            if purchase_order.status not in RECEIVABLE_STATUSES:
                raise InvalidStateError(
                    "PurchaseOrder", po_id, purchase_order.status.value, [s.value for s in RECEIVABLE_STATUSES]
                )

            lines = {line.id: line for line in purchase_order.lines}
            ledger = StockLedger(self.session, received_by)
            line_results = []
            touched_components = []

            for receipt in request.receipts:
                if receipt.quantity < 0:
                    raise InvalidOperationError(
                        "Received quantity must not be negative", line_id=receipt.line_id, quantity=receipt.quantity
                    )
                if receipt.quantity == 0:
                    continue

                line = lines.get(receipt.line_id)
                if line is None:
                    raise InvalidOperationError(
                        f"Line {receipt.line_id} does not belong to purchase order {purchase_order.po_number}",
                        line_id=receipt.line_id,
                        purchase_order_id=po_id,
                    )
                if line.status == PurchaseOrderLineStatus.CANCELLED:
                    raise InvalidOperationError(f"Line {line.id} is cancelled", line_id=line.id)

                already_received = line.quantity_received or 0
                if already_received + receipt.quantity > line.quantity_ordered:
                    raise OverReceiptError(
                        line_id=line.id,
                        ordered=line.quantity_ordered,
                        already_received=already_received,
                        attempted=receipt.quantity,
                    )

                line.quantity_received = already_received + receipt.quantity
                line.status = (
                    PurchaseOrderLineStatus.RECEIVED
                    if line.quantity_received == line.quantity_ordered
                    else PurchaseOrderLineStatus.PARTIAL
                )
                line.updated_by = received_by

                entry = await ledger.receive(
                    component_id=line.component_id,
                    location_id=receipt.location_id,
                    quantity=receipt.quantity,
                    reference_id=purchase_order.po_number,
                    unit_cost=line.unit_price,
                    reason=f"Received against {purchase_order.po_number}",
                    notes=request.notes,
                )
                line_results.append(ReceiptLineResult(
                    line_id=line.id,
                    component_id=line.component_id,
                    location_id=receipt.location_id,
                    quantity=receipt.quantity,
                    quantity_received=line.quantity_received,
                    quantity_ordered=line.quantity_ordered,
                    line_status=line.status,
                    stock_record_id=entry.record.id,
                    previous_qty=entry.previous_qty,
                    new_qty=entry.new_qty,
                    transaction_id=entry.transaction.id,
                ))
                if line.component_id not in touched_components:
                    touched_components.append(line.component_id)

            if not line_results:
                raise ValidationError("No quantities to receive")

            alerts_resolved = 0
            for component_id in touched_components:
                if await self._reconcile_stock_alert(component_id, purchase_order.po_number, received_by):
                    alerts_resolved += 1

            alert_service = AlertService(self.session)
            if await alert_service.resolve_open(
                po_overdue_alert_key(purchase_order.id),
                received_by,
                f"Shipment received against {purchase_order.po_number}",
            ):
                alerts_resolved += 1

            open_lines = [l for l in purchase_order.lines if l.status != PurchaseOrderLineStatus.CANCELLED]
            fully_received = all(l.quantity_received >= l.quantity_ordered for l in open_lines)
            if fully_received:
                purchase_order.status = PurchaseOrderStatus.RECEIVED
                purchase_order.actual_delivery = utc_now()
            else:
                purchase_order.status = PurchaseOrderStatus.PARTIAL_RECEIVED

            if request.notes:
                purchase_order.notes = append_note(purchase_order.notes, request.notes, received_by)
            purchase_order.updated_by = received_by

        logger.info(
            f"Received {sum(r.quantity for r in line_results)} units on {len(line_results)} line(s) "
            f"against {purchase_order.po_number} by {received_by}; status {purchase_order.status.value}"
        )
        return ReceiveShipmentResult(
            purchase_order_id=purchase_order.id,
            po_number=purchase_order.po_number,
            status=purchase_order.status,
            fully_received=fully_received,
            lines=line_results,
            alerts_resolved=alerts_resolved,
        )

    async def _reconcile_stock_alert(self, component_id: int, po_number: str, actor: str) -> bool:
        """Resolve the component's low/out-of-stock alert once total stock clears the minimum"""
        result = await self.session.execute(
            select(
                func.coalesce(func.sum(StockRecord.quantity), 0),
                func.max(StockRecord.minimum_stock),
            ).where(and_(StockRecord.component_id == component_id, StockRecord.is_deleted == False))
        )
        total_quantity, minimum_stock = result.one()
        threshold = minimum_stock if minimum_stock is not None else 0
        if total_quantity <= threshold:
            return False

        resolved = await AlertService(self.session).resolve_open(
            stock_alert_key(component_id),
            actor,
            f"Stock replenished by {po_number} ({total_quantity} on hand)",
        )
        return resolved is not None

    async def get_receiving_details(self, po_id: int) -> ReceivingDetails:
        """Lines with outstanding quantities and where each component is already stocked"""
        purchase_order = await self.session.get(PurchaseOrder, po_id)
        if not purchase_order or purchase_order.is_deleted:
            raise NotFoundError("PurchaseOrder", po_id)

        details = []
        for line in purchase_order.lines:
            component = await self.session.get(Component, line.component_id)
            stock_result = await self.session.execute(
                select(StockRecord, Location)
                .join(Location, Location.id == StockRecord.location_id)
                .where(and_(StockRecord.component_id == line.component_id, StockRecord.is_deleted == False))
                .order_by(StockRecord.quantity.desc())
            )
            details.append(ReceivingLineDetail(
                line_id=line.id,
                component_id=line.component_id,
                part_number=component.part_number,
                component_name=component.name,
                quantity_ordered=line.quantity_ordered,
                quantity_received=line.quantity_received,
                quantity_remaining=line.quantity_remaining,
                status=line.status,
                existing_locations=[
                    ExistingStockLocation(
                        stock_record_id=record.id,
                        location_id=location.id,
                        location_code=location.code,
                        quantity=record.quantity,
                    )
                    for record, location in stock_result.all()
                ],
            ))

        return ReceivingDetails(
            purchase_order_id=purchase_order.id,
            po_number=purchase_order.po_number,
            status=purchase_order.status,
            supplier_name=purchase_order.supplier.name if purchase_order.supplier else None,
            lines=details,
        )
