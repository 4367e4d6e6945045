# partsledger/services/inventory/component_service.py
import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func

from partsledger.core.exceptions import DuplicateKeyError, NotFoundError, ReferentialIntegrityError
from partsledger.models.inventory.bom_entry import BOMEntry
from partsledger.models.inventory.component import Component
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import ComponentStatus
from partsledger.schemas.inventory.component_schema import ComponentCreate, ComponentUpdate, ComponentStats
from partsledger.services.common.unit_of_work import atomic

logger = logging.getLogger(__name__)


class ComponentService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _part_number_taken(self, part_number: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Component.id).where(and_(
            Component.part_number == part_number,
            Component.is_deleted == False,
        ))
        if exclude_id:
            query = query.where(Component.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def create_component(self, component_data: ComponentCreate, actor: str) -> Component:
        async with atomic(self.session, "create component", "Component"):
            if await self._part_number_taken(component_data.part_number):
                raise DuplicateKeyError("Component", "part_number", component_data.part_number)

            component = Component(**component_data.model_dump(), created_by=actor, updated_by=actor)
            self.session.add(component)

        logger.info(f"Component {component.part_number} created by {actor}")
        return component

    async def get_component(self, component_id: int) -> Component:
        component = await self.session.get(Component, component_id)
        if not component or component.is_deleted:
            raise NotFoundError("Component", component_id)
        return component

    async def get_by_part_number(self, part_number: str) -> Component:
        result = await self.session.execute(
            select(Component).where(and_(Component.part_number == part_number, Component.is_deleted == False))
        )
        component = result.scalar_one_or_none()
        if not component:
            raise NotFoundError("Component", part_number)
        return component

    async def get_components(
        self,
        page_index: int = 1,
        page_size: int = 100,
        category: Optional[str] = None,
        status: Optional[ComponentStatus] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [Component.is_deleted == False]
        if category:
            conditions.append(Component.category == category)
        if status:
            conditions.append(Component.status == status)
        if search:
            conditions.append(or_(
                Component.part_number.ilike(f"%{search}%"),
                Component.name.ilike(f"%{search}%"),
                Component.manufacturer.ilike(f"%{search}%"),
                Component.manufacturer_part_number.ilike(f"%{search}%"),
            ))

        count_result = await self.session.execute(select(func.count(Component.id)).where(and_(*conditions)))
        total = count_result.scalar() or 0

        result = await self.session.execute(
            select(Component)
            .where(and_(*conditions))
            .order_by(Component.part_number)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": total,
            "data": result.scalars().all(),
        }

    async def update_component(self, component_id: int, component_data: ComponentUpdate, actor: str) -> Component:
        async with atomic(self.session, "update component", "Component", component_id):
            component = await self.get_component(component_id)
            changes = component_data.model_dump(exclude_unset=True)

            if changes.get("part_number") and changes["part_number"] != component.part_number:
                if await self._part_number_taken(changes["part_number"], exclude_id=component_id):
                    raise DuplicateKeyError("Component", "part_number", changes["part_number"])

            for field, value in changes.items():
                if value is None and field in ("part_number", "name", "category", "unit_of_measure", "status"):
                    continue
                setattr(component, field, value)
            component.updated_by = actor
        return component

    async def delete_component(self, component_id: int, actor: str) -> None:
        """Soft delete; refused while stock records or BOM entries still point at the part"""
        async with atomic(self.session, "delete component", "Component", component_id):
            component = await self.get_component(component_id)

            stock_count = await self.session.execute(
                select(func.count(StockRecord.id)).where(and_(
                    StockRecord.component_id == component_id, StockRecord.is_deleted == False
                ))
            )
            bom_count = await self.session.execute(
                select(func.count(BOMEntry.id)).where(and_(
                    BOMEntry.component_id == component_id, BOMEntry.is_deleted == False
                ))
            )
            dependents = {"stock_records": stock_count.scalar() or 0, "bom_entries": bom_count.scalar() or 0}
            if any(dependents.values()):
                raise ReferentialIntegrityError(
                    "Component", component_id, dependents,
                    hint="Set its status to DEPRECATED instead",
                )

            component.is_deleted = True
            component.updated_by = actor
        logger.info(f"Component {component.part_number} deleted by {actor}")

    async def get_stats(self) -> ComponentStats:
        live = Component.is_deleted == False
        total = await self.session.execute(select(func.count(Component.id)).where(live))
        by_category = await self.session.execute(
            select(Component.category, func.count(Component.id)).where(live).group_by(Component.category)
        )
        by_status = await self.session.execute(
            select(Component.status, func.count(Component.id)).where(live).group_by(Component.status)
        )
        return ComponentStats(
            total=total.scalar() or 0,
            by_category={row[0]: row[1] for row in by_category.all()},
            by_status={row[0].value: row[1] for row in by_status.all()},
        )
