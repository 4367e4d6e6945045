import pytest
from datetime import timedelta
from decimal import Decimal
from sqlalchemy import select, func

from partsledger.core.exceptions import (
    InvalidStateError, InvalidTransitionError, OverReceiptError, ValidationError,
)
from partsledger.models.alerts.alert import Alert
from partsledger.models.inventory.inventory_transaction import InventoryTransaction
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import (
    AlertStatus, PurchaseOrderLineStatus, PurchaseOrderStatus, ReferenceType, TransactionType,
)
from partsledger.schemas.purchase.purchase_order_schema import PurchaseOrderCreate, PurchaseOrderLineCreate
from partsledger.schemas.purchase.receiving_schema import ReceiptLine, ReceiveShipmentRequest
from partsledger.services.alerts.alert_service import po_overdue_alert_key, stock_alert_key
from partsledger.services.inventory.stock_service import StockService
from partsledger.services.monitor.po_monitor import PurchaseOrderMonitor
from partsledger.services.monitor.stock_monitor import StockMonitor
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService
from partsledger.services.purchase.receiving_service import ReceivingService
from partsledger.utils.date_time import utc_now


async def create_order(session, supplier_id, lines, **fields):
    return await PurchaseOrderService(session).create_purchase_order(
        PurchaseOrderCreate(supplier_id=supplier_id, lines=lines, **fields), "buyer"
    )


async def confirm(session, po_id):
    service = PurchaseOrderService(session)
    await service.update_status(po_id, PurchaseOrderStatus.SUBMITTED, "buyer")
    return await service.update_status(po_id, PurchaseOrderStatus.CONFIRMED, "manager")


@pytest.mark.asyncio
class TestPurchaseOrderLifecycle:
    """Draft creation, numbering and the status graph"""

    async def test_generated_numbers_are_sequential(self, session, supplier, component):
        """Numbers follow PO-<year>-<seq> and never repeat"""
        year = utc_now().year
        line = PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=10, unit_price=Decimal("0.25"))

        first = await create_order(session, supplier.id, [line])
        second = await create_order(session, supplier.id, [line])

        assert first.po_number == f"PO-{year}-001"
        assert second.po_number == f"PO-{year}-002"
        assert first.status == PurchaseOrderStatus.DRAFT

    async def test_generated_number_skips_manual_numbers(self, session, supplier):
        """A manually taken number is skipped by the generator"""
        year = utc_now().year
        await create_order(session, supplier.id, [], po_number=f"PO-{year}-001")

        generated = await create_order(session, supplier.id, [])

        assert generated.po_number == f"PO-{year}-002"

    async def test_totals_follow_lines(self, session, supplier, component, make_component):
        """Subtotal is the sum of line totals; total adds shipping and tax"""
        capacitor = await make_component(part_number="C-100N-0402", name="Cap 100n")
        po = await create_order(
            session,
            supplier.id,
            [
                PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=10, unit_price=Decimal("0.25")),
                PurchaseOrderLineCreate(component_id=capacitor.id, quantity_ordered=4, unit_price=Decimal("1.10")),
            ],
            shipping_cost=Decimal("5.00"),
        )

        assert po.subtotal == Decimal("6.90")
        assert po.total_amount == Decimal("11.90")

        po = await PurchaseOrderService(session).remove_line(po.id, po.lines[1].id, "buyer")
        assert len(po.lines) == 1
        assert po.subtotal == Decimal("2.50")

    async def test_status_walk_stamps_fields(self, session, supplier, component):
        """Submitting stamps the order date, confirming records the approver"""
        po = await create_order(session, supplier.id, [])

        po = await confirm(session, po.id)

        assert po.status == PurchaseOrderStatus.CONFIRMED
        assert po.order_date is not None
        assert po.approved_by == "manager"

    async def test_full_walk_through_shipped(self, session, supplier):
        """draft -> submitted -> confirmed -> shipped -> received, then nothing further"""
        po = await create_order(session, supplier.id, [])
        po_id = po.id
        await confirm(session, po_id)
        service = PurchaseOrderService(session)

        po = await service.update_status(po_id, PurchaseOrderStatus.SHIPPED, "buyer")
        assert po.status == PurchaseOrderStatus.SHIPPED

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.update_status(po_id, PurchaseOrderStatus.CANCELLED, "buyer")
        assert exc_info.value.detail["allowed"] == ["PARTIAL_RECEIVED", "RECEIVED"]

        po = await service.update_status(po_id, PurchaseOrderStatus.RECEIVED, "receiver")
        assert po.status == PurchaseOrderStatus.RECEIVED
        assert po.actual_delivery is not None

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.update_status(po_id, PurchaseOrderStatus.CANCELLED, "buyer")
        assert exc_info.value.detail["allowed"] == []

    async def test_shipped_to_partial_received(self, session, supplier):
        """Partial receipt can be recorded by hand, and only RECEIVED follows it"""
        po = await create_order(session, supplier.id, [])
        po_id = po.id
        await confirm(session, po_id)
        service = PurchaseOrderService(session)
        await service.update_status(po_id, PurchaseOrderStatus.SHIPPED, "buyer")

        po = await service.update_status(po_id, PurchaseOrderStatus.PARTIAL_RECEIVED, "receiver")
        assert po.status == PurchaseOrderStatus.PARTIAL_RECEIVED
        assert po.actual_delivery is None

        with pytest.raises(InvalidTransitionError) as exc_info:
            await service.update_status(po_id, PurchaseOrderStatus.SHIPPED, "buyer")
        assert exc_info.value.detail["allowed"] == ["RECEIVED"]

    async def test_illegal_transition(self, session, supplier):
        """Skipping straight to RECEIVED is refused with the allowed targets"""
        po = await create_order(session, supplier.id, [])
        po_id = po.id

        with pytest.raises(InvalidTransitionError) as exc_info:
            await PurchaseOrderService(session).update_status(po_id, PurchaseOrderStatus.RECEIVED, "buyer")

        assert exc_info.value.status_code == 409
        assert exc_info.value.detail["current"] == "DRAFT"
        assert exc_info.value.detail["allowed"] == ["CANCELLED", "SUBMITTED"]

    async def test_lines_only_change_on_drafts(self, session, supplier, component):
        """Adding a line to a submitted order is refused"""
        po = await create_order(session, supplier.id, [])
        po_id, component_id = po.id, component.id
        await PurchaseOrderService(session).update_status(po_id, PurchaseOrderStatus.SUBMITTED, "buyer")

        with pytest.raises(InvalidStateError):
            await PurchaseOrderService(session).add_line(
                po_id,
                PurchaseOrderLineCreate(component_id=component_id, quantity_ordered=1, unit_price=Decimal("1")),
                "buyer",
            )

    async def test_cancel_cancels_open_lines(self, session, supplier, component):
        """Cancelling an order cancels every line not yet received"""
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=5, unit_price=Decimal("2"))],
        )

        po = await PurchaseOrderService(session).update_status(
            po.id, PurchaseOrderStatus.CANCELLED, "buyer", notes="Supplier out of stock"
        )

        assert po.status == PurchaseOrderStatus.CANCELLED
        assert po.lines[0].status == PurchaseOrderLineStatus.CANCELLED
        assert "Supplier out of stock" in po.notes


@pytest.mark.asyncio
class TestReceiveShipment:
    """Receiving is one all-or-nothing transaction"""

    async def test_partial_then_full_receipt(self, session, supplier, component, location):
        """Status moves to PARTIAL_RECEIVED, then RECEIVED when every line is complete"""
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=100, unit_price=Decimal("0.05"))],
        )
        po = await confirm(session, po.id)
        line_id = po.lines[0].id
        service = ReceivingService(session)

        first = await service.receive_shipment(
            po.id,
            ReceiveShipmentRequest(receipts=[ReceiptLine(line_id=line_id, quantity=60, location_id=location.id)]),
            "receiver",
        )
        assert first.status == PurchaseOrderStatus.PARTIAL_RECEIVED
        assert not first.fully_received
        assert first.lines[0].line_status == PurchaseOrderLineStatus.PARTIAL
        assert first.lines[0].new_qty == 60

        second = await service.receive_shipment(
            po.id,
            ReceiveShipmentRequest(receipts=[ReceiptLine(line_id=line_id, quantity=40, location_id=location.id)]),
            "receiver",
        )
        assert second.status == PurchaseOrderStatus.RECEIVED
        assert second.fully_received
        assert second.lines[0].previous_qty == 60
        assert second.lines[0].new_qty == 100

        po = await PurchaseOrderService(session).get_purchase_order(po.id)
        assert po.actual_delivery is not None

        record = await StockService(session).get_stock_by_component_location(component.id, location.id)
        assert record.quantity == 100
        assert record.cost_per_unit == Decimal("0.05")

        result = await session.execute(
            select(InventoryTransaction).where(InventoryTransaction.stock_record_id == record.id)
        )
        entries = result.scalars().all()
        assert [e.transaction_type for e in entries] == [TransactionType.RECEIVE, TransactionType.RECEIVE]
        assert all(e.reference_type == ReferenceType.PURCHASE_ORDER for e in entries)
        assert all(e.reference_id == po.po_number for e in entries)

    async def test_receive_against_shipped_order(self, session, supplier, component, location):
        """A SHIPPED order accepts receipts and moves through PARTIAL_RECEIVED to RECEIVED"""
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=50, unit_price=Decimal("0.10"))],
        )
        await confirm(session, po.id)
        po = await PurchaseOrderService(session).update_status(po.id, PurchaseOrderStatus.SHIPPED, "buyer")
        line_id = po.lines[0].id
        service = ReceivingService(session)

        first = await service.receive_shipment(
            po.id,
            ReceiveShipmentRequest(receipts=[ReceiptLine(line_id=line_id, quantity=20, location_id=location.id)]),
            "receiver",
        )
        assert first.status == PurchaseOrderStatus.PARTIAL_RECEIVED

        second = await service.receive_shipment(
            po.id,
            ReceiveShipmentRequest(receipts=[ReceiptLine(line_id=line_id, quantity=30, location_id=location.id)]),
            "receiver",
        )
        assert second.status == PurchaseOrderStatus.RECEIVED
        assert second.fully_received

        record = await StockService(session).get_stock_by_component_location(component.id, location.id)
        assert record.quantity == 50

    async def test_over_receipt_rolls_back_every_line(self, session, supplier, component, location, make_component):
        """One bad line leaves every line, record and ledger entry untouched"""
        capacitor = await make_component(part_number="C-1U-0603", name="Cap 1u")
        po = await create_order(
            session,
            supplier.id,
            [
                PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=10, unit_price=Decimal("1")),
                PurchaseOrderLineCreate(component_id=capacitor.id, quantity_ordered=5, unit_price=Decimal("1")),
            ],
        )
        po = await confirm(session, po.id)
        po_id = po.id
        good_line, bad_line = po.lines[0].id, po.lines[1].id
        location_id = location.id

        with pytest.raises(OverReceiptError) as exc_info:
            await ReceivingService(session).receive_shipment(
                po_id,
                ReceiveShipmentRequest(receipts=[
                    ReceiptLine(line_id=good_line, quantity=10, location_id=location_id),
                    ReceiptLine(line_id=bad_line, quantity=6, location_id=location_id),
                ]),
                "receiver",
            )

        assert exc_info.value.status_code == 422
        assert exc_info.value.detail["ordered"] == 5
        assert exc_info.value.detail["attempted"] == 6

        po = await PurchaseOrderService(session).get_purchase_order(po_id)
        assert po.status == PurchaseOrderStatus.CONFIRMED
        assert [line.quantity_received for line in po.lines] == [0, 0]
        records = await session.execute(select(func.count(StockRecord.id)))
        assert records.scalar() == 0
        entries = await session.execute(select(func.count(InventoryTransaction.id)))
        assert entries.scalar() == 0

    async def test_draft_orders_cannot_receive(self, session, supplier, component, location):
        """Only confirmed, shipped or partially received orders take shipments"""
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=1, unit_price=Decimal("1"))],
        )
        request = ReceiveShipmentRequest(
            receipts=[ReceiptLine(line_id=po.lines[0].id, quantity=1, location_id=location.id)]
        )

        with pytest.raises(InvalidStateError):
            await ReceivingService(session).receive_shipment(po.id, request, "receiver")

    async def test_zero_quantities_only_is_rejected(self, session, supplier, component, location):
        """A shipment with nothing in it is refused"""
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=3, unit_price=Decimal("1"))],
        )
        po = await confirm(session, po.id)
        request = ReceiveShipmentRequest(
            receipts=[ReceiptLine(line_id=po.lines[0].id, quantity=0, location_id=location.id)]
        )

        with pytest.raises(ValidationError):
            await ReceivingService(session).receive_shipment(po.id, request, "receiver")

    async def test_receipt_resolves_stock_and_overdue_alerts(
        self, session, supplier, component, location, make_stock
    ):
        """Restocking above the minimum closes the stock alert; any receipt closes the overdue alert"""
        await make_stock(component.id, location.id, quantity=2, minimum_stock=10)
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=50, unit_price=Decimal("0.10"))],
            expected_delivery=(utc_now() - timedelta(days=2)).date(),
        )
        po = await confirm(session, po.id)

        await StockMonitor(session).run()
        await PurchaseOrderMonitor(session).run()

        result = await ReceivingService(session).receive_shipment(
            po.id,
            ReceiveShipmentRequest(
                receipts=[ReceiptLine(line_id=po.lines[0].id, quantity=20, location_id=location.id)]
            ),
            "receiver",
        )

        assert result.alerts_resolved == 2
        alerts = (await session.execute(select(Alert).order_by(Alert.id))).scalars().all()
        assert len(alerts) == 2
        assert all(alert.status == AlertStatus.RESOLVED for alert in alerts)
        assert all(alert.open_key is None for alert in alerts)
        assert all(alert.resolved_by == "receiver" for alert in alerts)

    async def test_small_receipt_keeps_stock_alert(self, session, supplier, component, location, make_stock):
        """Stock still at or below the minimum keeps its alert open"""
        await make_stock(component.id, location.id, quantity=2, minimum_stock=10)
        po = await create_order(
            session,
            supplier.id,
            [PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=50, unit_price=Decimal("0.10"))],
        )
        po = await confirm(session, po.id)
        await StockMonitor(session).run()

        result = await ReceivingService(session).receive_shipment(
            po.id,
            ReceiveShipmentRequest(
                receipts=[ReceiptLine(line_id=po.lines[0].id, quantity=5, location_id=location.id)]
            ),
            "receiver",
        )

        assert result.alerts_resolved == 0
        open_alert = await session.execute(select(Alert).where(Alert.open_key == stock_alert_key(component.id)))
        assert open_alert.scalar_one().status == AlertStatus.ACTIVE
        overdue = await session.execute(select(Alert).where(Alert.open_key == po_overdue_alert_key(po.id)))
        assert overdue.scalar_one_or_none() is None
