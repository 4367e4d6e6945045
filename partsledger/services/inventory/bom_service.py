# partsledger/services/inventory/bom_service.py
import logging
from typing import Optional, List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, func
from sqlalchemy.orm import selectinload

from partsledger.core.exceptions import DuplicateKeyError, NotFoundError, ValidationError
from partsledger.models.inventory.bom_entry import BOMEntry
from partsledger.models.inventory.component import Component
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.schemas.inventory.bom_schema import (
    BOMEntryCreate,
    BOMEntryUpdate,
    FeasibilityItem,
    FeasibilityResult,
    ProductBOMSummary,
)
from partsledger.services.common.unit_of_work import atomic

logger = logging.getLogger(__name__)


class BOMService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _entry_exists(self, product_name: str, component_id: int, bom_version: str, exclude_id: Optional[int] = None) -> bool:
        query = select(BOMEntry.id).where(and_(
            BOMEntry.product_name == product_name,
            BOMEntry.component_id == component_id,
            BOMEntry.bom_version == bom_version,
            BOMEntry.is_deleted == False,
        ))
        if exclude_id:
            query = query.where(BOMEntry.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def create_entry(self, entry_data: BOMEntryCreate, actor: str) -> BOMEntry:
        async with atomic(self.session, "create BOM entry", "BOMEntry"):
            component = await self.session.get(Component, entry_data.component_id)
            if not component or component.is_deleted:
                raise NotFoundError("Component", entry_data.component_id)
            if entry_data.component_id in entry_data.substitute_component_ids:
                raise ValidationError("A component cannot substitute for itself")
            if await self._entry_exists(entry_data.product_name, entry_data.component_id, entry_data.bom_version):
                raise DuplicateKeyError(
                    "BOMEntry", "product_name/component_id/bom_version",
                    f"{entry_data.product_name}/{entry_data.component_id}/{entry_data.bom_version}",
                )

            entry = BOMEntry(**entry_data.model_dump(), created_by=actor, updated_by=actor)
            self.session.add(entry)

        logger.info(f"BOM entry added to {entry.product_name} v{entry.bom_version} by {actor}")
        return await self.get_entry(entry.id)

    async def get_entry(self, entry_id: int) -> BOMEntry:
        result = await self.session.execute(
            select(BOMEntry)
            .options(selectinload(BOMEntry.component))
            .where(and_(BOMEntry.id == entry_id, BOMEntry.is_deleted == False))
            .execution_options(populate_existing=True)
        )
        entry = result.scalar_one_or_none()
        if not entry:
            raise NotFoundError("BOMEntry", entry_id)
        return entry

    async def update_entry(self, entry_id: int, entry_data: BOMEntryUpdate, actor: str) -> BOMEntry:
        async with atomic(self.session, "update BOM entry", "BOMEntry", entry_id):
            entry = await self.get_entry(entry_id)
            changes = entry_data.model_dump(exclude_unset=True)

            if changes.get("bom_version") and changes["bom_version"] != entry.bom_version:
                if await self._entry_exists(entry.product_name, entry.component_id, changes["bom_version"], exclude_id=entry_id):
                    raise DuplicateKeyError(
                        "BOMEntry", "product_name/component_id/bom_version",
                        f"{entry.product_name}/{entry.component_id}/{changes['bom_version']}",
                    )
            if entry.component_id in (changes.get("substitute_component_ids") or []):
                raise ValidationError("A component cannot substitute for itself")

            for field, value in changes.items():
                if value is None and field in ("quantity_per_unit", "is_optional", "bom_version"):
                    continue
                setattr(entry, field, value)
            entry.updated_by = actor
        return await self.get_entry(entry_id)

    async def delete_entry(self, entry_id: int, actor: str) -> None:
        async with atomic(self.session, "delete BOM entry", "BOMEntry", entry_id):
            entry = await self.get_entry(entry_id)
            entry.is_deleted = True
            entry.updated_by = actor

    async def get_product_entries(self, product_name: str, bom_version: Optional[str] = None) -> List[BOMEntry]:
        """Entries for a product; without a version the most recently created one is used"""
        if bom_version is None:
            bom_version = await self._latest_version(product_name)
            if bom_version is None:
                return []

        result = await self.session.execute(
            select(BOMEntry)
            .options(selectinload(BOMEntry.component))
            .where(and_(
                BOMEntry.product_name == product_name,
                BOMEntry.bom_version == bom_version,
                BOMEntry.is_deleted == False,
            ))
            .order_by(BOMEntry.id)
        )
        return result.scalars().all()

    async def _latest_version(self, product_name: str) -> Optional[str]:
        result = await self.session.execute(
            select(BOMEntry.bom_version)
            .where(and_(BOMEntry.product_name == product_name, BOMEntry.is_deleted == False))
            .order_by(BOMEntry.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_products(self) -> List[ProductBOMSummary]:
        result = await self.session.execute(
            select(BOMEntry.product_name, BOMEntry.bom_version, func.count(BOMEntry.id), func.sum(BOMEntry.quantity_per_unit))
            .where(BOMEntry.is_deleted == False)
            .group_by(BOMEntry.product_name, BOMEntry.bom_version)
            .order_by(BOMEntry.product_name, BOMEntry.bom_version)
        )
        summaries: Dict[str, ProductBOMSummary] = {}
        for product_name, bom_version, entry_count, parts in result.all():
            summary = summaries.setdefault(
                product_name,
                ProductBOMSummary(product_name=product_name, bom_versions=[], entry_count=0, total_parts_per_unit=0),
            )
            summary.bom_versions.append(bom_version)
            summary.entry_count += entry_count
            summary.total_parts_per_unit += int(parts or 0)
        return list(summaries.values())

    async def _available_quantity(self, component_ids: List[int]) -> int:
        if not component_ids:
            return 0
        result = await self.session.execute(
            select(func.coalesce(func.sum(StockRecord.available_qty), 0)).where(and_(
                StockRecord.component_id.in_(component_ids),
                StockRecord.is_deleted == False,
            ))
        )
        return int(result.scalar() or 0)

    async def check_feasibility(
        self,
        product_name: str,
        quantity: int,
        bom_version: Optional[str] = None,
    ) -> FeasibilityResult:
        """Can ``quantity`` units be built from unreserved stock? Read only."""
        if quantity <= 0:
            raise ValidationError("Build quantity must be positive")

        entries = await self.get_product_entries(product_name, bom_version)
        if not entries:
            return FeasibilityResult(
                feasible=False,
                product_name=product_name,
                build_quantity=quantity,
                bom_version=bom_version,
                shortages=0,
                reason=f"No BOM entries found for {product_name}",
            )

        items = []
        for entry in entries:
            total_required = entry.quantity_per_unit * quantity
            total_available = await self._available_quantity([entry.component_id])
            shortage = max(0, total_required - total_available)
            items.append(FeasibilityItem(
                component_id=entry.component_id,
                part_number=entry.component.part_number,
                component_name=entry.component.name,
                quantity_per_unit=entry.quantity_per_unit,
                total_required=total_required,
                total_available=total_available,
                shortage=shortage,
                is_optional=entry.is_optional,
                sufficient=shortage == 0,
                substitute_available=await self._available_quantity(list(entry.substitute_component_ids or [])),
            ))

        blocking = [item for item in items if item.shortage > 0 and not item.is_optional]
        return FeasibilityResult(
            feasible=not blocking,
            product_name=product_name,
            build_quantity=quantity,
            bom_version=entries[0].bom_version,
            shortages=len(blocking),
            reason=None if not blocking else f"{len(blocking)} required component(s) short",
            items=items,
        )
