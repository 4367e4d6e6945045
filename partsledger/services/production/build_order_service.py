# partsledger/services/production/build_order_service.py
import logging
from typing import Optional, List, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_, or_, func

from partsledger.core.exceptions import (
    DuplicateKeyError,
    InsufficientStockError,
    InvalidOperationError,
    InvalidTransitionError,
    NotFoundError,
)
from partsledger.models.production.build_order import BuildOrder
from partsledger.models.production.build_reservation import BuildReservation
from partsledger.models.inventory.stock_record import StockRecord
from partsledger.models.shared.enums import BuildOrderStatus, QcStatus, ReferenceType
from partsledger.schemas.production.build_order_schema import (
    BuildCompleteRequest,
    BuildOrderCreate,
    BuildOrderDetail,
    BuildOrderResponse,
    BuildOrderUpdate,
)
from partsledger.services.common.sequence_service import SequenceService, product_code
from partsledger.services.common.unit_of_work import atomic
from partsledger.services.inventory.bom_service import BOMService
from partsledger.services.inventory.stock_ledger import StockLedger
from partsledger.services.purchase.purchase_order_service import append_note
from partsledger.utils.date_time import utc_now

logger = logging.getLogger(__name__)

BUILD_TRANSITIONS = {
    BuildOrderStatus.PLANNED: {BuildOrderStatus.MATERIALS_RESERVED, BuildOrderStatus.CANCELLED},
    BuildOrderStatus.MATERIALS_RESERVED: {
        BuildOrderStatus.IN_PROGRESS, BuildOrderStatus.PLANNED, BuildOrderStatus.CANCELLED,
    },
    BuildOrderStatus.IN_PROGRESS: {BuildOrderStatus.QC, BuildOrderStatus.CANCELLED},
    BuildOrderStatus.QC: {BuildOrderStatus.COMPLETE, BuildOrderStatus.IN_PROGRESS},
    BuildOrderStatus.COMPLETE: set(),
    BuildOrderStatus.CANCELLED: set(),
}

ACTIVE_STATUSES = (
    BuildOrderStatus.PLANNED,
    BuildOrderStatus.MATERIALS_RESERVED,
    BuildOrderStatus.IN_PROGRESS,
    BuildOrderStatus.QC,
)


class BuildOrderService:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def generate_build_number(self, product_name: str) -> str:
        year = utc_now().year
        code = product_code(product_name)
        sequence_service = SequenceService(self.session)
        while True:
            sequence = await sequence_service.next_value(f"build:{product_name}:{year}")
            build_number = f"BUILD-{code}-{year}-{sequence:03d}"
            if not await self._build_number_exists(build_number):
                return build_number

    async def _build_number_exists(self, build_number: str) -> bool:
        result = await self.session.execute(select(BuildOrder.id).where(BuildOrder.build_number == build_number))
        return result.first() is not None

    async def _get_for_update(self, build_id: int) -> BuildOrder:
        result = await self.session.execute(
            select(BuildOrder)
            .where(and_(BuildOrder.id == build_id, BuildOrder.is_deleted == False))
            .with_for_update()
        )
        build = result.scalar_one_or_none()
        if not build:
            raise NotFoundError("BuildOrder", build_id)
        return build

    async def create_build_order(self, build_data: BuildOrderCreate, actor: str) -> BuildOrder:
        async with atomic(self.session, "create build order", "BuildOrder"):
            if build_data.build_number:
                if await self._build_number_exists(build_data.build_number):
                    raise DuplicateKeyError("BuildOrder", "build_number", build_data.build_number)
                build_number = build_data.build_number
            else:
                build_number = await self.generate_build_number(build_data.product_name)

            build = BuildOrder(
                **build_data.model_dump(exclude={"build_number"}),
                build_number=build_number,
                status=BuildOrderStatus.PLANNED,
                created_by=actor,
                updated_by=actor,
            )
            self.session.add(build)

        logger.info(f"Build order {build.build_number} ({build.quantity} x {build.product_name}) created by {actor}")
        return await self.get_build_order(build.id)

    async def update_build_order(self, build_id: int, build_data: BuildOrderUpdate, actor: str) -> BuildOrder:
        async with atomic(self.session, "update build order", "BuildOrder", build_id):
            build = await self._get_for_update(build_id)
            for field, value in build_data.model_dump(exclude_unset=True).items():
                if value is None and field == "priority":
                    continue
                setattr(build, field, value)
            build.updated_by = actor
        return await self.get_build_order(build_id)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def update_status(
        self,
        build_id: int,
        new_status: BuildOrderStatus,
        actor: str,
        notes: Optional[str] = None,
    ) -> BuildOrder:
        """Move a build along its lifecycle, reserving or releasing material as the edge requires"""
        async with atomic(self.session, "update build order status", "BuildOrder", build_id):
            build = await self._get_for_update(build_id)
            completion = None
            if new_status == BuildOrderStatus.COMPLETE:
                completion = BuildCompleteRequest(qc_passed_count=build.quantity, qc_failed_count=0)
            await self._transition(build, new_status, actor, completion)
            if notes:
                build.notes = append_note(build.notes, notes, actor)
        return await self.get_build_order(build_id)

    async def complete_build(self, build_id: int, completion: BuildCompleteRequest, actor: str) -> BuildOrder:
        async with atomic(self.session, "complete build order", "BuildOrder", build_id):
            build = await self._get_for_update(build_id)
            await self._transition(build, BuildOrderStatus.COMPLETE, actor, completion)
        return await self.get_build_order(build_id)

    async def _transition(
        self,
        build: BuildOrder,
        new_status: BuildOrderStatus,
        actor: str,
        completion: Optional[BuildCompleteRequest] = None,
    ) -> None:
        current = build.status
        allowed = BUILD_TRANSITIONS[current]
        if new_status not in allowed:
            raise InvalidTransitionError(
                "BuildOrder", build.id, current.value, new_status.value, [s.value for s in allowed]
            )

        ledger = StockLedger(self.session, actor)
        if new_status == BuildOrderStatus.MATERIALS_RESERVED:
            await self._reserve_materials(build, ledger)
        elif new_status in (BuildOrderStatus.PLANNED, BuildOrderStatus.CANCELLED):
            await self._release_materials(build, ledger)
        elif new_status == BuildOrderStatus.IN_PROGRESS:
            if build.actual_start is None:
                build.actual_start = utc_now()
        elif new_status == BuildOrderStatus.COMPLETE:
            await self._consume_materials(build, ledger, completion)
            build.completed_at = utc_now()

        build.status = new_status
        build.updated_by = actor
        logger.info(f"Build order {build.build_number}: {current.value} -> {new_status.value} by {actor}")

    async def _reserve_materials(self, build: BuildOrder, ledger: StockLedger) -> None:
        """Reserve every required BOM line, fullest location first; all or nothing"""
        entries = await BOMService(self.session).get_product_entries(build.product_name, build.bom_version)
        if not entries:
            raise InvalidOperationError(
                f"No BOM entries found for {build.product_name}; cannot reserve materials",
                product_name=build.product_name,
                bom_version=build.bom_version,
            )
        for entry in entries:
            if entry.is_optional:
                continue
            required = entry.quantity_per_unit * build.quantity

            result = await self.session.execute(
                select(StockRecord)
                .where(and_(
                    StockRecord.component_id == entry.component_id,
                    StockRecord.is_deleted == False,
                    StockRecord.available_qty > 0,
                ))
                .order_by(StockRecord.available_qty.desc(), StockRecord.id)
                .with_for_update()
            )
            records = result.scalars().all()
            available = sum(record.available_qty for record in records)
            if available < required:
                raise InsufficientStockError(
                    requested=required, available=available, component_id=entry.component_id
                )

            remaining = required
            for record in records:
                if remaining == 0:
                    break
                take = min(remaining, record.available_qty)
                await ledger.reserve(
                    record,
                    take,
                    reason=f"Reserved for {build.build_number}",
                    reference_type=ReferenceType.BUILD_ORDER,
                    reference_id=build.build_number,
                )
                build.reservations.append(BuildReservation(
                    stock_record_id=record.id,
                    component_id=record.component_id,
                    quantity=take,
                    created_by=ledger.performed_by,
                ))
                remaining -= take

    async def _release_materials(self, build: BuildOrder, ledger: StockLedger) -> None:
        for reservation in list(build.reservations):
            record = await ledger.get_record(reservation.stock_record_id)
            await ledger.release(
                record,
                reservation.quantity,
                reason=f"Released from {build.build_number}",
                reference_type=ReferenceType.BUILD_ORDER,
                reference_id=build.build_number,
            )
        build.reservations.clear()

    async def _consume_materials(
        self,
        build: BuildOrder,
        ledger: StockLedger,
        completion: BuildCompleteRequest,
    ) -> None:
        units_built = completion.qc_passed_count + completion.qc_failed_count
        if units_built > build.quantity:
            raise InvalidOperationError(
                f"QC counts ({units_built}) exceed build quantity ({build.quantity})",
                build_order_id=build.id,
                quantity=build.quantity,
                units_built=units_built,
            )

        entries = await BOMService(self.session).get_product_entries(build.product_name, build.bom_version)
        needed: Dict[int, int] = {}
        for entry in entries:
            needed[entry.component_id] = needed.get(entry.component_id, 0) + entry.quantity_per_unit * units_built

        for reservation in list(build.reservations):
            record = await ledger.get_record(reservation.stock_record_id)
            # a cycle count may have cut the reservation back since it was made
            take = min(reservation.quantity, needed.get(reservation.component_id, 0), record.reserved_qty)
            if take:
                await ledger.consume_reserved(
                    record,
                    take,
                    reason=f"Consumed by {build.build_number}",
                    reference_type=ReferenceType.BUILD_ORDER,
                    reference_id=build.build_number,
                )
                needed[reservation.component_id] -= take
            leftover = reservation.quantity - take
            if leftover:
                await ledger.release(
                    record,
                    leftover,
                    reason=f"Unused by {build.build_number}",
                    reference_type=ReferenceType.BUILD_ORDER,
                    reference_id=build.build_number,
                )
        build.reservations.clear()

        build.qc_passed_count = completion.qc_passed_count
        build.qc_failed_count = completion.qc_failed_count
        build.qc_notes = completion.qc_notes
        if completion.qc_failed_count == 0:
            build.qc_status = QcStatus.PASSED
        elif completion.qc_passed_count == 0:
            build.qc_status = QcStatus.FAILED
        else:
            build.qc_status = QcStatus.PARTIAL

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_build_order(self, build_id: int) -> BuildOrder:
        result = await self.session.execute(
            select(BuildOrder)
            .where(and_(BuildOrder.id == build_id, BuildOrder.is_deleted == False))
            .execution_options(populate_existing=True)
        )
        build = result.scalar_one_or_none()
        if not build:
            raise NotFoundError("BuildOrder", build_id)
        return build

    async def get_build_orders(
        self,
        page_index: int = 1,
        page_size: int = 100,
        status: Optional[BuildOrderStatus] = None,
        product_name: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Dict[str, Any]:
        conditions = [BuildOrder.is_deleted == False]
        if status:
            conditions.append(BuildOrder.status == status)
        if product_name:
            conditions.append(BuildOrder.product_name == product_name)
        if search:
            conditions.append(or_(
                BuildOrder.build_number.ilike(f"%{search}%"),
                BuildOrder.product_name.ilike(f"%{search}%"),
            ))

        count_result = await self.session.execute(select(func.count(BuildOrder.id)).where(and_(*conditions)))
        result = await self.session.execute(
            select(BuildOrder)
            .where(and_(*conditions))
            .order_by(BuildOrder.created_at.desc(), BuildOrder.id.desc())
            .offset((page_index - 1) * page_size)
            .limit(page_size)
        )
        return {
            "page_index": page_index,
            "page_size": page_size,
            "count": count_result.scalar() or 0,
            "data": result.scalars().all(),
        }

    async def get_active_builds(self) -> List[BuildOrder]:
        result = await self.session.execute(
            select(BuildOrder)
            .where(and_(BuildOrder.status.in_(ACTIVE_STATUSES), BuildOrder.is_deleted == False))
            .order_by(BuildOrder.scheduled_start, BuildOrder.id)
        )
        return result.scalars().all()

    async def get_build_detail(self, build_id: int) -> BuildOrderDetail:
        build = await self.get_build_order(build_id)
        material_status = await BOMService(self.session).check_feasibility(
            build.product_name, build.quantity, build.bom_version
        )
        return BuildOrderDetail(
            build_order=BuildOrderResponse.model_validate(build),
            material_status=material_status,
            reserved_units=sum(r.quantity for r in build.reservations),
        )
