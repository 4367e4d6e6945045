# partsledger/services/purchase/component_supplier_service.py
import logging
from typing import List, Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, update

from partsledger.core.exceptions import DuplicateKeyError, NotFoundError
from partsledger.models.purchase.component_supplier import ComponentSupplier
from partsledger.schemas.purchase.component_supplier_schema import ComponentSupplierCreate, ComponentSupplierUpdate
from partsledger.services.common.unit_of_work import atomic
from partsledger.services.inventory.component_service import ComponentService
from partsledger.services.purchase.supplier_service import SupplierService
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)


class ComponentSupplierService:
    """Sourcing links between components and the suppliers that sell them"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _find_link(self, component_id: int, supplier_id: int) -> Optional[ComponentSupplier]:
        result = await self.session.execute(
            select(ComponentSupplier).where(and_(
                ComponentSupplier.component_id == component_id,
                ComponentSupplier.supplier_id == supplier_id,
            ))
        )
        return result.scalar_one_or_none()

    async def _clear_preferred(self, component_id: int, keep_id: Optional[int] = None) -> None:
        """A component has at most one preferred supplier"""
        statement = (
            update(ComponentSupplier)
            .where(and_(ComponentSupplier.component_id == component_id, ComponentSupplier.is_preferred == True))
            .values(is_preferred=False)
        )
        if keep_id is not None:
            statement = statement.where(ComponentSupplier.id != keep_id)
        await self.session.execute(statement.execution_options(synchronize_session="fetch"))

    async def create_link(self, link_data: ComponentSupplierCreate, actor: str) -> ComponentSupplier:
        async with atomic(self.session, "link component to supplier", "ComponentSupplier"):
            component = await ComponentService(self.session).get_component(link_data.component_id)
            supplier = await SupplierService(self.session).get_supplier(link_data.supplier_id)
            if await self._find_link(component.id, supplier.id):
                raise DuplicateKeyError(
                    "ComponentSupplier", "component_id/supplier_id", f"{component.id}/{supplier.id}"
                )

            if link_data.is_preferred:
                await self._clear_preferred(component.id)

            link = ComponentSupplier(
                **link_data.model_dump(),
                last_price_check=utc_now() if link_data.unit_price is not None else None,
                created_by=actor,
                updated_by=actor,
            )
            self.session.add(link)

        logger.info(f"Component {component.part_number} linked to supplier {supplier.code} by {actor}")
        return await self.get_link(link.id)

    async def get_link(self, link_id: int) -> ComponentSupplier:
        result = await self.session.execute(
            select(ComponentSupplier)
            .where(ComponentSupplier.id == link_id)
            .execution_options(populate_existing=True)
        )
        link = result.scalar_one_or_none()
        if not link:
            raise NotFoundError("ComponentSupplier", link_id)
        return link

    async def list_by_component(self, component_id: int) -> List[ComponentSupplier]:
        """Preferred supplier first, then cheapest"""
        result = await self.session.execute(
            select(ComponentSupplier)
            .where(ComponentSupplier.component_id == component_id)
            .order_by(
                ComponentSupplier.is_preferred.desc(),
                ComponentSupplier.unit_price.is_(None),
                ComponentSupplier.unit_price,
                ComponentSupplier.id,
            )
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def list_by_supplier(self, supplier_id: int) -> List[ComponentSupplier]:
        result = await self.session.execute(
            select(ComponentSupplier)
            .where(ComponentSupplier.supplier_id == supplier_id)
            .order_by(ComponentSupplier.id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().all()

    async def update_link(self, link_id: int, link_data: ComponentSupplierUpdate, actor: str) -> ComponentSupplier:
        async with atomic(self.session, "update component supplier", "ComponentSupplier", link_id):
            link = await self.get_link(link_id)
            changes = link_data.model_dump(exclude_unset=True)

            if changes.get("is_preferred"):
                await self._clear_preferred(link.component_id, keep_id=link.id)
            if "unit_price" in changes:
                link.last_price_check = utc_now()

            for field, value in changes.items():
                if value is None and field in ("currency", "is_preferred"):
                    continue
                setattr(link, field, value)
            link.updated_by = actor
        return await self.get_link(link_id)

    async def delete_link(self, link_id: int, actor: str) -> None:
        async with atomic(self.session, "remove component supplier", "ComponentSupplier", link_id):
            link = await self.get_link(link_id)
            await self.session.delete(link)
        logger.info(f"Component supplier link {link_id} removed by {actor}")
