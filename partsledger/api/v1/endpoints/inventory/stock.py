from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import StockStatus
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.inventory.stock_schema import (
    LowStockReport,
    StockAdjustRequest,
    StockCountRequest,
    StockCountResult,
    StockMutationResult,
    StockRecordCreate,
    StockRecordResponse,
    StockReservationRequest,
    StockSetQuantityRequest,
    StockThresholdUpdate,
    StockTransferRequest,
    StockTransferResult,
)
from partsledger.services.inventory.stock_service import StockService

router = APIRouter()

@router.post("/", response_model=StockRecordResponse, status_code=status.HTTP_201_CREATED)
async def create_stock_record(
    stock_data: StockRecordCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Create a stock record with its opening quantity"""
    service = StockService(db)
    return await service.create_stock_record(stock_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[StockRecordResponse])
async def get_stock_records(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    component_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    status: Optional[StockStatus] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get all stock records with optional filters"""
    service = StockService(db)
    return await service.get_stock_records(
        page_index=page_index,
        page_size=page_size,
        component_id=component_id,
        location_id=location_id,
        status=status,
        search=search
    )

@router.get("/low-stock", response_model=LowStockReport)
async def get_low_stock_report(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Records at or below their minimum, with quantities incoming on open POs"""
    service = StockService(db)
    return await service.get_low_stock_report()

@router.post("/adjust", response_model=StockMutationResult)
async def adjust_stock(
    adjust_data: StockAdjustRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Apply a signed quantity change and log it"""
    service = StockService(db)
    return await service.adjust_stock(adjust_data, current_operator.name)

@router.post("/transfer", response_model=StockTransferResult)
async def transfer_stock(
    transfer_data: StockTransferRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Move stock between two locations in one transaction"""
    service = StockService(db)
    return await service.transfer_stock(transfer_data, current_operator.name)

@router.get("/component/{component_id}/location/{location_id}", response_model=StockRecordResponse)
async def get_stock_by_component_location(
    component_id: int,
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get stock record for specific component and location"""
    service = StockService(db)
    return await service.get_stock_by_component_location(component_id, location_id)

@router.get("/{stock_record_id}", response_model=StockRecordResponse)
async def get_stock_record(
    stock_record_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get stock record by ID"""
    service = StockService(db)
    return await service.get_stock_record(stock_record_id)

@router.put("/{stock_record_id}/thresholds", response_model=StockRecordResponse)
async def update_thresholds(
    stock_record_id: int,
    threshold_data: StockThresholdUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = StockService(db)
    return await service.update_thresholds(stock_record_id, threshold_data, current_operator.name)

@router.post("/{stock_record_id}/set-quantity", response_model=StockMutationResult)
async def set_quantity(
    stock_record_id: int,
    set_data: StockSetQuantityRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Overwrite the on-hand quantity; the difference is logged as an adjustment"""
    service = StockService(db)
    return await service.set_quantity(stock_record_id, set_data.quantity, set_data.reason, current_operator.name)

@router.post("/{stock_record_id}/reserve", response_model=StockMutationResult)
async def reserve_stock(
    stock_record_id: int,
    reservation: StockReservationRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = StockService(db)
    return await service.reserve_stock(stock_record_id, reservation.quantity, current_operator.name, reservation.reason)

@router.post("/{stock_record_id}/release", response_model=StockMutationResult)
async def release_stock(
    stock_record_id: int,
    reservation: StockReservationRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = StockService(db)
    return await service.release_stock(stock_record_id, reservation.quantity, current_operator.name, reservation.reason)

@router.post("/{stock_record_id}/count", response_model=StockCountResult)
async def record_count(
    stock_record_id: int,
    count_data: StockCountRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Record a physical cycle count"""
    service = StockService(db)
    return await service.record_count(stock_record_id, count_data.counted_qty, current_operator.name, count_data.notes)
