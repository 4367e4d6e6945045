import pytest
from decimal import Decimal

from partsledger.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from partsledger.models.purchase.supplier import Supplier
from partsledger.models.shared.enums import CostSource, CostType
from partsledger.schemas.inventory.bom_schema import BOMEntryCreate
from partsledger.schemas.inventory.costing_schema import CostSnapshotCreate
from partsledger.schemas.inventory.stock_schema import StockRecordCreate
from partsledger.schemas.production.build_order_schema import BuildOrderCreate
from partsledger.schemas.purchase.component_supplier_schema import ComponentSupplierCreate, ComponentSupplierUpdate
from partsledger.schemas.purchase.purchase_order_schema import PurchaseOrderCreate, PurchaseOrderLineCreate
from partsledger.services.inventory.bom_service import BOMService
from partsledger.services.inventory.costing_service import CostingService
from partsledger.services.inventory.stock_service import StockService
from partsledger.services.production.build_order_service import BuildOrderService
from partsledger.services.purchase.component_supplier_service import ComponentSupplierService
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService

PRODUCT = "Motor Driver"


@pytest.fixture
async def mouser(session):
    supplier = Supplier(code="MOUSER", name="Mouser", created_by="test")
    session.add(supplier)
    await session.commit()
    return supplier


@pytest.fixture
async def priced_bom(session, supplier, mouser, component, location, make_component):
    """One component per cost source, plus one nobody has priced"""
    led = await make_component(part_number="LED-GRN-0805", name="Green LED", category="Optoelectronics")
    capacitor = await make_component(part_number="C-10U-0805", name="Cap 10u")
    mystery = await make_component(part_number="U-CUSTOM-01", name="Custom ASIC", category="IC")

    # resistor: last purchase order price
    await PurchaseOrderService(session).create_purchase_order(
        PurchaseOrderCreate(
            supplier_id=supplier.id,
            lines=[PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=100, unit_price=Decimal("0.25"))],
        ),
        "buyer",
    )
    # capacitor: cost recorded on stock
    await StockService(session).create_stock_record(
        StockRecordCreate(component_id=capacitor.id, location_id=location.id, quantity=40, cost_per_unit=Decimal("0.05")),
        "test",
    )
    # LED: preferred supplier wins over a cheaper one
    links = ComponentSupplierService(session)
    await links.create_link(
        ComponentSupplierCreate(component_id=led.id, supplier_id=supplier.id, unit_price=Decimal("0.30")), "buyer"
    )
    await links.create_link(
        ComponentSupplierCreate(
            component_id=led.id, supplier_id=mouser.id, unit_price=Decimal("0.40"), is_preferred=True
        ),
        "buyer",
    )

    bom = BOMService(session)
    for component_id, per_unit in ((component.id, 2), (led.id, 1), (capacitor.id, 1), (mystery.id, 1)):
        await bom.create_entry(
            BOMEntryCreate(product_name=PRODUCT, component_id=component_id, quantity_per_unit=per_unit), "engineer"
        )
    return {"resistor": component.id, "led": led.id, "capacitor": capacitor.id, "mystery": mystery.id}


@pytest.mark.asyncio
class TestComponentSuppliers:
    """Sourcing links between components and suppliers"""

    async def test_link_and_list(self, session, supplier, mouser, component):
        service = ComponentSupplierService(session)
        link = await service.create_link(
            ComponentSupplierCreate(
                component_id=component.id,
                supplier_id=supplier.id,
                supplier_part_number="311-10KGRCT-ND",
                unit_price=Decimal("0.02"),
                currency="usd",
            ),
            "buyer",
        )

        assert link.currency == "USD"
        assert link.last_price_check is not None
        assert link.part_number == "R-10K-0603"
        assert link.supplier_code == "DIGI"

        by_supplier = await service.list_by_supplier(supplier.id)
        assert [l.component_id for l in by_supplier] == [component.id]
        assert await service.list_by_supplier(mouser.id) == []

    async def test_pair_is_unique(self, session, supplier, component):
        service = ComponentSupplierService(session)
        await service.create_link(ComponentSupplierCreate(component_id=component.id, supplier_id=supplier.id), "buyer")

        with pytest.raises(DuplicateKeyError):
            await service.create_link(
                ComponentSupplierCreate(component_id=component.id, supplier_id=supplier.id), "buyer"
            )

    async def test_unknown_supplier(self, session, component):
        with pytest.raises(NotFoundError):
            await ComponentSupplierService(session).create_link(
                ComponentSupplierCreate(component_id=component.id, supplier_id=999), "buyer"
            )

    async def test_only_one_preferred_supplier(self, session, supplier, mouser, component):
        """Marking a supplier preferred clears the flag on the others"""
        service = ComponentSupplierService(session)
        digi = await service.create_link(
            ComponentSupplierCreate(
                component_id=component.id, supplier_id=supplier.id, unit_price=Decimal("0.02"), is_preferred=True
            ),
            "buyer",
        )
        other = await service.create_link(
            ComponentSupplierCreate(component_id=component.id, supplier_id=mouser.id, unit_price=Decimal("0.01")),
            "buyer",
        )

        links = await service.list_by_component(component.id)
        assert [l.id for l in links] == [digi.id, other.id]

        await service.update_link(other.id, ComponentSupplierUpdate(is_preferred=True), "buyer")

        links = await service.list_by_component(component.id)
        assert [(l.id, l.is_preferred) for l in links] == [(other.id, True), (digi.id, False)]

    async def test_remove_link(self, session, supplier, component):
        service = ComponentSupplierService(session)
        link = await service.create_link(
            ComponentSupplierCreate(component_id=component.id, supplier_id=supplier.id), "buyer"
        )
        link_id = link.id

        await service.delete_link(link_id, "buyer")

        with pytest.raises(NotFoundError):
            await service.get_link(link_id)
        # the pair can be linked again once removed
        again = await service.create_link(
            ComponentSupplierCreate(component_id=component.id, supplier_id=supplier.id), "buyer"
        )
        assert again.id is not None


@pytest.mark.asyncio
class TestProductCosting:
    """Material cost roll-up from BOM quantities and the best known prices"""

    async def test_cost_sources_in_priority_order(self, session, priced_bom):
        estimate = await CostingService(session).calculate_product_cost(PRODUCT, 10)

        sources = {item.component_id: (item.source, item.unit_cost) for item in estimate.line_items}
        assert sources[priced_bom["resistor"]] == (CostSource.PO_LAST, Decimal("0.25"))
        assert sources[priced_bom["capacitor"]] == (CostSource.INVENTORY, Decimal("0.05"))
        assert sources[priced_bom["led"]] == (CostSource.SUPPLIER_PREFERRED, Decimal("0.40"))
        assert sources[priced_bom["mystery"]] == (CostSource.UNKNOWN, Decimal("0"))

        # 2 x 0.25 + 0.40 + 0.05 per unit
        assert estimate.material_cost == Decimal("9.50")
        assert estimate.cost_per_unit == Decimal("0.95")
        assert estimate.has_unknown_costs
        assert estimate.bom_version == "1.0"

    async def test_purchase_price_beats_supplier_price(self, session, supplier, component):
        """Once the part has been ordered, the order price is used"""
        await ComponentSupplierService(session).create_link(
            ComponentSupplierCreate(
                component_id=component.id, supplier_id=supplier.id, unit_price=Decimal("0.03"), is_preferred=True
            ),
            "buyer",
        )
        costing = CostingService(session)
        assert await costing.find_unit_cost(component.id) == (Decimal("0.03"), CostSource.SUPPLIER_PREFERRED)

        await PurchaseOrderService(session).create_purchase_order(
            PurchaseOrderCreate(
                supplier_id=supplier.id,
                lines=[PurchaseOrderLineCreate(component_id=component.id, quantity_ordered=500, unit_price=Decimal("0.02"))],
            ),
            "buyer",
        )
        assert await costing.find_unit_cost(component.id) == (Decimal("0.02"), CostSource.PO_LAST)

    async def test_product_without_bom_costs_nothing(self, session):
        estimate = await CostingService(session).calculate_product_cost("Nothing", 5)

        assert estimate.line_items == []
        assert estimate.material_cost == 0
        assert not estimate.has_unknown_costs

    async def test_quantity_must_be_positive(self, session):
        with pytest.raises(ValidationError):
            await CostingService(session).calculate_product_cost(PRODUCT, 0)

    async def test_snapshot_history(self, session, priced_bom):
        """Snapshots add labor and overhead and are listed newest first"""
        costing = CostingService(session)
        first = await costing.save_snapshot(CostSnapshotCreate(product_name=PRODUCT, quantity=10), "analyst")
        second = await costing.save_snapshot(
            CostSnapshotCreate(product_name=PRODUCT, quantity=10, labor_cost=Decimal("2.00")), "analyst"
        )

        assert first.total_cost == Decimal("9.50")
        assert second.total_cost == Decimal("11.50")
        assert second.cost_per_unit == Decimal("1.15")
        assert second.cost_type == CostType.ESTIMATE
        assert len(second.line_items) == 4

        history = await costing.get_cost_history(PRODUCT)
        assert [s.id for s in history] == [second.id, first.id]
        latest = await costing.get_latest_per_product()
        assert [s.id for s in latest] == [second.id]

    async def test_snapshot_requires_bom(self, session):
        with pytest.raises(ValidationError):
            await CostingService(session).save_snapshot(CostSnapshotCreate(product_name="Nothing"), "analyst")

    async def test_actual_cost_must_match_build_product(self, session, priced_bom):
        build = await BuildOrderService(session).create_build_order(
            BuildOrderCreate(product_name="Other Board", quantity=2), "planner"
        )

        with pytest.raises(ValidationError):
            await CostingService(session).save_snapshot(
                CostSnapshotCreate(product_name=PRODUCT, build_order_id=build.id, cost_type=CostType.ACTUAL),
                "analyst",
            )
