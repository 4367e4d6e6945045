import pytest
from sqlalchemy import select, func

from partsledger.core.exceptions import InsufficientStockError, InvalidOperationError
from partsledger.models.alerts.alert import Alert
from partsledger.models.inventory.inventory_transaction import InventoryTransaction
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import (
    AlertStatus, AlertType, ReferenceType, StockStatus, TransactionType,
)
from partsledger.schemas.inventory.stock_schema import StockAdjustRequest, StockTransferRequest
from partsledger.services.inventory.stock_service import StockService
from partsledger.services.inventory.transaction_service import TransactionService


async def transaction_count(session) -> int:
    result = await session.execute(select(func.count(InventoryTransaction.id)))
    return result.scalar()


async def entries_for(session, stock_record_id: int):
    result = await session.execute(
        select(InventoryTransaction)
        .where(InventoryTransaction.stock_record_id == stock_record_id)
        .order_by(InventoryTransaction.id)
    )
    return result.scalars().all()


@pytest.mark.asyncio
class TestStockAdjustments:
    """Every quantity change lands with exactly one ledger entry"""

    async def test_initial_quantity_is_journaled(self, session, component, location, make_stock):
        """Opening stock is written as an ADJUST entry from zero"""
        record = await make_stock(component.id, location.id, quantity=20, minimum_stock=5)

        assert record.quantity == 20
        assert record.available_qty == 20
        assert record.status == StockStatus.IN_STOCK

        entries = await entries_for(session, record.id)
        assert len(entries) == 1
        assert entries[0].transaction_type == TransactionType.ADJUST
        assert entries[0].quantity == 20
        assert entries[0].previous_qty == 0
        assert entries[0].new_qty == 20

    async def test_adjust_creates_record_for_new_location(self, session, component, location):
        """A positive adjustment at an unstocked location creates the record"""
        service = StockService(session)
        result = await service.adjust_stock(
            StockAdjustRequest(component_id=component.id, location_id=location.id, delta=7, reason="Found in drawer"),
            "tester",
        )

        assert result.previous_qty == 0
        assert result.new_qty == 7
        record = await service.get_stock_by_component_location(component.id, location.id)
        assert record.quantity == 7

    async def test_negative_result_is_rejected_without_side_effects(self, session, component, location, make_stock):
        """Driving stock below zero fails and leaves record and ledger untouched"""
        record = await make_stock(component.id, location.id, quantity=5)
        record_id, component_id, location_id = record.id, component.id, location.id
        before = await transaction_count(session)

        service = StockService(session)
        with pytest.raises(InvalidOperationError) as exc_info:
            await service.adjust_stock(
                StockAdjustRequest(component_id=component_id, location_id=location_id, delta=-6, reason="Scrapped"),
                "tester",
            )

        assert exc_info.value.status_code == 422
        assert exc_info.value.detail["previous_qty"] == 5
        assert exc_info.value.detail["delta"] == -6
        refreshed = await service.get_stock_record(record_id)
        assert refreshed.quantity == 5
        assert await transaction_count(session) == before

    async def test_negative_adjust_on_missing_record(self, session, component, location):
        """Removing stock where none is held does not create a record"""
        component_id, location_id = component.id, location.id
        with pytest.raises(InvalidOperationError):
            await StockService(session).adjust_stock(
                StockAdjustRequest(component_id=component_id, location_id=location_id, delta=-1, reason="Lost"),
                "tester",
            )

        result = await session.execute(select(func.count(StockRecord.id)))
        assert result.scalar() == 0

    async def test_adjust_rejects_non_adjustable_type(self, session, component, location, make_stock):
        """RECEIVE only comes from purchase order receiving"""
        await make_stock(component.id, location.id, quantity=5)
        component_id, location_id = component.id, location.id

        with pytest.raises(InvalidOperationError):
            await StockService(session).adjust_stock(
                StockAdjustRequest(
                    component_id=component_id,
                    location_id=location_id,
                    delta=3,
                    reason="Sneaky receipt",
                    transaction_type=TransactionType.RECEIVE,
                ),
                "tester",
            )

    async def test_set_quantity_writes_signed_delta(self, session, component, location, make_stock):
        """Setting an absolute quantity journals the difference"""
        record = await make_stock(component.id, location.id, quantity=12)

        result = await StockService(session).set_quantity(record.id, 4, "Recount after spill", "tester")

        assert result.previous_qty == 12
        assert result.new_qty == 4
        entries = await entries_for(session, record.id)
        assert entries[-1].quantity == -8


@pytest.mark.asyncio
class TestReservations:
    """Reservations never exceed quantity and never go negative"""

    async def test_reserve_reduces_available(self, session, component, location, make_stock):
        """Reserving moves units from available to reserved"""
        record = await make_stock(component.id, location.id, quantity=20)

        result = await StockService(session).reserve_stock(record.id, 5, "tester")

        assert result.reserved_qty == 5
        assert result.available_qty == 15
        assert result.new_qty == 20
        entries = await entries_for(session, record.id)
        assert entries[-1].transaction_type == TransactionType.RESERVE
        assert entries[-1].quantity == 0
        assert entries[-1].reserved_change == 5

    async def test_reserve_more_than_available(self, session, component, location, make_stock):
        """Over-reservation reports requested and available amounts"""
        record = await make_stock(component.id, location.id, quantity=3)
        record_id = record.id

        with pytest.raises(InsufficientStockError) as exc_info:
            await StockService(session).reserve_stock(record_id, 4, "tester")

        assert exc_info.value.status_code == 409
        assert exc_info.value.detail["requested"] == 4
        assert exc_info.value.detail["available"] == 3

    async def test_release_is_clamped_to_reservation(self, session, component, location, make_stock):
        """Releasing more than is reserved releases only what is held"""
        record = await make_stock(component.id, location.id, quantity=10)
        service = StockService(session)
        await service.reserve_stock(record.id, 4, "tester")

        result = await service.release_stock(record.id, 10, "tester")

        assert result.reserved_qty == 0
        assert result.available_qty == 10
        entries = await entries_for(session, record.id)
        assert entries[-1].transaction_type == TransactionType.UNRESERVE
        assert entries[-1].reserved_change == -4

    async def test_quantity_cannot_drop_below_reservation(self, session, component, location, make_stock):
        """Adjusting away reserved units is refused"""
        record = await make_stock(component.id, location.id, quantity=10)
        record_id, component_id, location_id = record.id, component.id, location.id
        service = StockService(session)
        await service.reserve_stock(record_id, 8, "tester")

        with pytest.raises(InvalidOperationError):
            await service.adjust_stock(
                StockAdjustRequest(component_id=component_id, location_id=location_id, delta=-5, reason="Scrap"),
                "tester",
            )

        refreshed = await service.get_stock_record(record_id)
        assert refreshed.quantity == 10
        assert refreshed.reserved_qty == 8


@pytest.mark.asyncio
class TestCycleCount:
    """Physical counts overwrite the system quantity"""

    async def test_count_discrepancy_opens_alert(self, session, component, location, make_stock):
        """A mismatch is journaled and flagged once"""
        record = await make_stock(component.id, location.id, quantity=20)
        service = StockService(session)

        result = await service.record_count(record.id, 17, "counter", notes="Bin was short")

        assert result.discrepancy == -3
        assert result.new_qty == 17
        assert result.alert_id is not None

        entries = await entries_for(session, record.id)
        assert entries[-1].reference_type == ReferenceType.CYCLE_COUNT
        assert entries[-1].quantity == -3

        refreshed = await service.get_stock_record(record.id)
        assert refreshed.last_counted_by == "counter"
        assert refreshed.last_counted_at is not None

        alert = await session.get(Alert, result.alert_id)
        assert alert.alert_type == AlertType.COUNT_DISCREPANCY
        assert alert.status == AlertStatus.ACTIVE
        assert alert.trigger_context["discrepancy"] == -3

        # a second count updates the same open alert
        second = await service.record_count(record.id, 15, "counter")
        assert second.alert_id == result.alert_id

    async def test_matching_count_opens_no_alert(self, session, component, location, make_stock):
        """A count that agrees still stamps the record"""
        record = await make_stock(component.id, location.id, quantity=9)

        result = await StockService(session).record_count(record.id, 9, "counter")

        assert result.discrepancy == 0
        assert result.alert_id is None

    async def test_count_cuts_back_reservation(self, session, component, location, make_stock):
        """The shelf wins when a count lands below the reservation"""
        record = await make_stock(component.id, location.id, quantity=10)
        service = StockService(session)
        await service.reserve_stock(record.id, 8, "tester")

        result = await service.record_count(record.id, 6, "counter")

        assert result.new_qty == 6
        assert result.reserved_qty == 6
        assert result.available_qty == 0


@pytest.mark.asyncio
class TestTransfers:
    """Transfers move stock between locations as a linked pair of entries"""

    async def test_transfer_writes_paired_entries(self, session, component, location, other_location, make_stock):
        """Source and destination entries share one reference"""
        source = await make_stock(component.id, location.id, quantity=10)
        service = StockService(session)

        result = await service.transfer_stock(
            StockTransferRequest(
                component_id=component.id,
                from_location_id=location.id,
                to_location_id=other_location.id,
                quantity=4,
            ),
            "mover",
        )

        assert result.source.new_qty == 6
        assert result.destination.previous_qty == 0
        assert result.destination.new_qty == 4

        outgoing = (await entries_for(session, source.id))[-1]
        incoming = (await entries_for(session, result.destination.stock_record_id))[-1]
        assert outgoing.transaction_type == TransactionType.TRANSFER
        assert outgoing.quantity == -4
        assert incoming.quantity == 4
        assert outgoing.reference_id == incoming.reference_id
        assert outgoing.to_location_id == other_location.id

    async def test_transfer_needs_unreserved_stock(self, session, component, location, other_location, make_stock):
        """Reserved units cannot be moved away"""
        source = await make_stock(component.id, location.id, quantity=10)
        source_id = source.id
        request = StockTransferRequest(
            component_id=component.id,
            from_location_id=location.id,
            to_location_id=other_location.id,
            quantity=5,
        )
        service = StockService(session)
        await service.reserve_stock(source_id, 6, "tester")
        before = await transaction_count(session)

        with pytest.raises(InvalidOperationError):
            await service.transfer_stock(request, "mover")

        assert await transaction_count(session) == before
        refreshed = await service.get_stock_record(source_id)
        assert refreshed.quantity == 10


@pytest.mark.asyncio
class TestLedgerReplay:
    """Folding the ledger reproduces the live record"""

    async def test_replay_matches_record(self, session, component, location, make_stock):
        """Mixed operations replay to the stored quantity and reservation"""
        record = await make_stock(component.id, location.id, quantity=30)
        service = StockService(session)
        await service.reserve_stock(record.id, 10, "tester")
        await service.set_quantity(record.id, 25, "Damaged reel", "tester")
        await service.release_stock(record.id, 4, "tester")
        await service.record_count(record.id, 24, "counter")

        replay = await TransactionService(session).replay_history(component.id, location.id)

        assert replay.entry_count == 5
        assert replay.replayed_quantity == 24
        assert replay.replayed_reserved == 6
        assert replay.actual_quantity == 24
        assert replay.actual_reserved == 6
        assert replay.chain_intact
        assert replay.consistent
