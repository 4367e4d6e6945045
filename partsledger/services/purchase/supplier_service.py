# partsledger/services/purchase/supplier_service.py
import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func

from partsledger.core.exceptions import DuplicateKeyError, NotFoundError, ReferentialIntegrityError
from partsledger.models.purchase.purchase_order import PurchaseOrder
from partsledger.models.purchase.supplier import Supplier
from partsledger.models.shared.enums import SupplierStatus
from partsledger.schemas.purchase.supplier_schema import SupplierCreate, SupplierUpdate
from partsledger.services.common.unit_of_work import atomic

logger = logging.getLogger(__name__)


class SupplierService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def _code_taken(self, code: str, exclude_id: Optional[int] = None) -> bool:
        query = select(Supplier.id).where(and_(Supplier.code == code, Supplier.is_deleted == False))
        if exclude_id:
            query = query.where(Supplier.id != exclude_id)
        result = await self.session.execute(query)
        return result.first() is not None

    async def create_supplier(self, supplier_data: SupplierCreate, actor: str) -> Supplier:
        async with atomic(self.session, "create supplier", "Supplier"):
            if await self._code_taken(supplier_data.code):
                raise DuplicateKeyError("Supplier", "code", supplier_data.code)
            supplier = Supplier(**supplier_data.model_dump(), created_by=actor, updated_by=actor)
            self.session.add(supplier)

        logger.info(f"Supplier {supplier.code} created by {actor}")
        return supplier

    async def get_supplier(self, supplier_id: int) -> Supplier:
        supplier = await self.session.get(Supplier, supplier_id)
        if not supplier or supplier.is_deleted:
            raise NotFoundError("Supplier", supplier_id)
        return supplier

    async def get_suppliers(
        self,
        page_index: int = 1,
        page_size: int = 100,
        status: Optional[SupplierStatus] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [Supplier.is_deleted == False]
        if status:
            conditions.append(Supplier.status == status)
        if search:
            conditions.append(or_(
                Supplier.code.ilike(f"%{search}%"),
                Supplier.name.ilike(f"%{search}%"),
                Supplier.contact_person.ilike(f"%{search}%"),
            ))

        count_result = await self.session.execute(select(func.count(Supplier.id)).where(and_(*conditions)))
        result = await self.session.execute(
            select(Supplier)
            .where(and_(*conditions))
            .order_by(Supplier.name)
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": count_result.scalar() or 0,
            "data": result.scalars().all(),
        }

    async def update_supplier(self, supplier_id: int, supplier_data: SupplierUpdate, actor: str) -> Supplier:
        async with atomic(self.session, "update supplier", "Supplier", supplier_id):
            supplier = await self.get_supplier(supplier_id)
            changes = supplier_data.model_dump(exclude_unset=True)

            if changes.get("code"):
                changes["code"] = changes["code"].strip().upper()
                if changes["code"] != supplier.code and await self._code_taken(changes["code"], exclude_id=supplier_id):
                    raise DuplicateKeyError("Supplier", "code", changes["code"])

            for field, value in changes.items():
                if value is None and field in ("code", "name", "status"):
                    continue
                setattr(supplier, field, value)
            supplier.updated_by = actor
        return supplier

    async def delete_supplier(self, supplier_id: int, actor: str) -> None:
        async with atomic(self.session, "delete supplier", "Supplier", supplier_id):
            supplier = await self.get_supplier(supplier_id)
            po_count = await self.session.execute(
                select(func.count(PurchaseOrder.id)).where(and_(
                    PurchaseOrder.supplier_id == supplier_id, PurchaseOrder.is_deleted == False
                ))
            )
            dependents = {"purchase_orders": po_count.scalar() or 0}
            if dependents["purchase_orders"]:
                raise ReferentialIntegrityError(
                    "Supplier", supplier_id, dependents, hint="Set its status to INACTIVE instead"
                )
            supplier.is_deleted = True
            supplier.updated_by = actor
        logger.info(f"Supplier {supplier.code} deleted by {actor}")
