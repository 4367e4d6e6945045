# partsledger/services/inventory/location_service.py
import logging
from typing import Optional, List, Dict
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func

from partsledger.core.exceptions import (
    DuplicateKeyError, NotFoundError, ReferentialIntegrityError, ValidationError,
)
from partsledger.models.inventory.location import Location
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.schemas.inventory.location_schema import LocationCreate, LocationUpdate, LocationTreeNode
from partsledger.services.common.unit_of_work import atomic

logger = logging.getLogger(__name__)


class LocationService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Location.id).where(and_(Location.code == code, Location.is_deleted == False))
        if exclude_id:
            query = query.where(Location.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def _check_parent(self, parent_id: Optional[int], location_id: Optional[int] = None) -> None:
        if parent_id is None:
            return
        if parent_id == location_id:
            raise ValidationError("A location cannot be its own parent")

        # walk up from the proposed parent; meeting ourselves means a cycle
        current_id = parent_id
        while current_id is not None:
            parent = await self.session.get(Location, current_id)
            if not parent or parent.is_deleted:
                raise NotFoundError("Location", current_id)
            if location_id is not None and parent.parent_id == location_id:
                raise ValidationError("Location hierarchy cannot contain cycles")
            current_id = parent.parent_id

    async def create_location(self, location_data: LocationCreate, actor: str) -> Location:
        async with atomic(self.session, "create location", "Location"):
            if await self._code_taken(location_data.code):
                raise DuplicateKeyError("Location", "code", location_data.code)
            await self._check_parent(location_data.parent_id)

            location = Location(**location_data.model_dump(), created_by=actor, updated_by=actor)
            self.session.add(location)

        logger.info(f"Location {location.code} created by {actor}")
        return location

    async def get_location(self, location_id: int) -> Location:
        location = await self.session.get(Location, location_id)
        if not location or location.is_deleted:
            raise NotFoundError("Location", location_id)
        return location

    async def get_by_code(self, code: str) -> Location:
        result = await self.session.execute(
            select(Location).where(and_(Location.code == code.upper(), Location.is_deleted == False))
        )
        location = result.scalar_one_or_none()
        if not location:
            raise NotFoundError("Location", code)
        return location

    async def get_locations(self, search: Optional[str] = None, parent_id: Optional[int] = None) -> List[Location]:
        conditions = [Location.is_deleted == False]
        if parent_id is not None:
            conditions.append(Location.parent_id == parent_id)
        if search:
            conditions.append(or_(Location.code.ilike(f"%{search}%"), Location.name.ilike(f"%{search}%")))

        result = await self.session.execute(select(Location).where(and_(*conditions)).order_by(Location.code))
        return result.scalars().all()

    async def get_children(self, location_id: int) -> List[Location]:
        await self.get_location(location_id)
        return await self.get_locations(parent_id=location_id)

    async def get_tree(self) -> List[LocationTreeNode]:
        locations = await self.get_locations()
        nodes: Dict[int, LocationTreeNode] = {
            loc.id: LocationTreeNode(
                id=loc.id, code=loc.code, name=loc.name, location_type=loc.location_type, status=loc.status
            )
            for loc in locations
        }
        roots = []
        for loc in locations:
            node = nodes[loc.id]
            if loc.parent_id and loc.parent_id in nodes:
                nodes[loc.parent_id].children.append(node)
            else:
                roots.append(node)
        return roots

    async def update_location(self, location_id: int, location_data: LocationUpdate, actor: str) -> Location:
        async with atomic(self.session, "update location", "Location", location_id):
            location = await self.get_location(location_id)
            changes = location_data.model_dump(exclude_unset=True)

            if changes.get("code"):
                changes["code"] = changes["code"].strip().upper()
                if changes["code"] != location.code and await self._code_taken(changes["code"], exclude_id=location_id):
                    raise DuplicateKeyError("Location", "code", changes["code"])
            if "parent_id" in changes:
                await self._check_parent(changes["parent_id"], location_id)

            for field, value in changes.items():
                if value is None and field in ("code", "name", "location_type", "status"):
                    continue
                setattr(location, field, value)
            location.updated_by = actor
        return location

    async def delete_location(self, location_id: int, actor: str) -> None:
        """Soft delete; refused while the location holds stock or has child locations"""
        async with atomic(self.session, "delete location", "Location", location_id):
            location = await self.get_location(location_id)

            stock_count = await self.session.execute(
                select(func.count(StockRecord.id)).where(and_(
                    StockRecord.location_id == location_id,
                    StockRecord.is_deleted == False,
                    StockRecord.quantity > 0,
                ))
            )
            child_count = await self.session.execute(
                select(func.count(Location.id)).where(and_(
                    Location.parent_id == location_id, Location.is_deleted == False
                ))
            )
            dependents = {"stock_records": stock_count.scalar() or 0, "child_locations": child_count.scalar() or 0}
            if any(dependents.values()):
                raise ReferentialIntegrityError("Location", location_id, dependents)

            location.is_deleted = True
            location.updated_by = actor
        logger.info(f"Location {location.code} deleted by {actor}")
