# partsledger/services/inventory/costing_service.py
import logging
from decimal import Decimal
from typing import List, Optional, Tuple
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func

from partsledger.core.exceptions import ValidationError
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.production.product_cost import ProductCost
from partsledger.models.purchase.component_supplier import ComponentSupplier
from partsledger.models.purchase.purchase_order_line import PurchaseOrderLine
from partsledger.models.shared.enums import CostSource
from partsledger.schemas.inventory.costing_schema import CostLineItem, CostSnapshotCreate, ProductCostEstimate
from partsledger.services.common.unit_of_work import atomic
from partsledger.services.inventory.bom_service import BOMService
from partsledger.services.production.build_order_service import BuildOrderService
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

FOUR_PLACES = Decimal("0.0001")


class CostingService:
    """Material cost roll-ups from the BOM and the best known component prices.

    A component's unit cost is taken from the first source that has a
    positive price: the most recent purchase order line, the cost recorded on
    a stock record at receipt, the preferred supplier's price, any supplier's
    price. Components with none of these cost zero and flag the estimate.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_unit_cost(self, component_id: int) -> Tuple[Decimal, CostSource]:
        result = await self.session.execute(
            select(PurchaseOrderLine.unit_price)
            .where(and_(
                PurchaseOrderLine.component_id == component_id,
                PurchaseOrderLine.is_deleted == False,
                PurchaseOrderLine.unit_price > 0,
            ))
            .order_by(PurchaseOrderLine.id.desc())
            .limit(1)
        )
        price = result.scalar_one_or_none()
        if price:
            return Decimal(price), CostSource.PO_LAST

        result = await self.session.execute(
            select(StockRecord.cost_per_unit)
            .where(and_(
                StockRecord.component_id == component_id,
                StockRecord.is_deleted == False,
                StockRecord.cost_per_unit > 0,
            ))
            .order_by(StockRecord.id.desc())
            .limit(1)
        )
        price = result.scalar_one_or_none()
        if price:
            return Decimal(price), CostSource.INVENTORY

        result = await self.session.execute(
            select(ComponentSupplier.unit_price, ComponentSupplier.is_preferred)
            .where(and_(ComponentSupplier.component_id == component_id, ComponentSupplier.unit_price > 0))
            .order_by(ComponentSupplier.is_preferred.desc(), ComponentSupplier.unit_price)
            .limit(1)
        )
        row = result.first()
        if row:
            source = CostSource.SUPPLIER_PREFERRED if row.is_preferred else CostSource.SUPPLIER_PRICE
            return Decimal(row.unit_price), source

        return Decimal("0"), CostSource.UNKNOWN

    async def calculate_product_cost(
        self,
        product_name: str,
        quantity: int = 1,
        bom_version: Optional[str] = None,
    ) -> ProductCostEstimate:
        """Estimated material cost of ``quantity`` units. Read only."""
        if quantity <= 0:
            raise ValidationError("Quantity must be positive")

        entries = await BOMService(self.session).get_product_entries(product_name, bom_version)
        if not entries:
            return ProductCostEstimate(product_name=product_name, quantity=quantity, bom_version=bom_version)

        line_items: List[CostLineItem] = []
        for entry in entries:
            unit_cost, source = await self.find_unit_cost(entry.component_id)
            line_items.append(CostLineItem(
                component_id=entry.component_id,
                part_number=entry.component.part_number,
                component_name=entry.component.name,
                quantity_per_unit=entry.quantity_per_unit,
                unit_cost=unit_cost,
                total_cost=(unit_cost * entry.quantity_per_unit * quantity).quantize(FOUR_PLACES),
                source=source,
            ))

        material_cost = sum((item.total_cost for item in line_items), Decimal("0"))
        return ProductCostEstimate(
            product_name=product_name,
            quantity=quantity,
            bom_version=entries[0].bom_version,
            material_cost=material_cost,
            cost_per_unit=(material_cost / quantity).quantize(FOUR_PLACES),
            has_unknown_costs=any(item.source == CostSource.UNKNOWN for item in line_items),
            line_items=line_items,
        )

    async def save_snapshot(self, snapshot_data: CostSnapshotCreate, actor: str) -> ProductCost:
        """Roll up the current costs and keep them as a history entry"""
        if snapshot_data.build_order_id is not None:
            build = await BuildOrderService(self.session).get_build_order(snapshot_data.build_order_id)
            if build.product_name != snapshot_data.product_name:
                raise ValidationError(
                    f"Build {build.build_number} is for {build.product_name}, not {snapshot_data.product_name}"
                )

        estimate = await self.calculate_product_cost(
            snapshot_data.product_name, snapshot_data.quantity, snapshot_data.bom_version
        )
        if not estimate.line_items:
            raise ValidationError(f"No BOM entries found for {snapshot_data.product_name}")

        labor = snapshot_data.labor_cost or Decimal("0")
        overhead = snapshot_data.overhead_cost or Decimal("0")
        total_cost = estimate.material_cost + labor + overhead

        async with atomic(self.session, "save cost snapshot", "ProductCost"):
            snapshot = ProductCost(
                product_name=estimate.product_name,
                build_order_id=snapshot_data.build_order_id,
                cost_type=snapshot_data.cost_type,
                bom_version=estimate.bom_version,
                quantity=estimate.quantity,
                material_cost=estimate.material_cost,
                labor_cost=snapshot_data.labor_cost,
                overhead_cost=snapshot_data.overhead_cost,
                total_cost=total_cost,
                cost_per_unit=(total_cost / estimate.quantity).quantize(FOUR_PLACES),
                line_items=[item.model_dump(mode="json") for item in estimate.line_items],
                calculated_at=utc_now(),
                notes=snapshot_data.notes,
                created_by=actor,
                updated_by=actor,
            )
            self.session.add(snapshot)

        logger.info(
            f"Cost snapshot for {snapshot.product_name}: {snapshot.cost_per_unit}/unit "
            f"({snapshot.cost_type.value}) by {actor}"
        )
        return snapshot

    async def get_cost_history(self, product_name: Optional[str] = None, limit: int = 20) -> List[ProductCost]:
        query = select(ProductCost).where(ProductCost.is_deleted == False)
        if product_name:
            query = query.where(ProductCost.product_name == product_name)
        result = await self.session.execute(
            query.order_by(ProductCost.calculated_at.desc(), ProductCost.id.desc()).limit(limit)
        )
        return result.scalars().all()

    async def get_latest_per_product(self) -> List[ProductCost]:
        latest = (
            select(ProductCost.product_name, func.max(ProductCost.id).label("latest_id"))
            .where(ProductCost.is_deleted == False)
            .group_by(ProductCost.product_name)
            .subquery()
        )
        result = await self.session.execute(
            select(ProductCost)
            .join(latest, ProductCost.id == latest.c.latest_id)
            .order_by(ProductCost.product_name)
        )
        return result.scalars().all()
