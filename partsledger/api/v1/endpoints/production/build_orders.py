from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import BuildOrderStatus
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.production.build_order_schema import (
    BuildCompleteRequest,
    BuildOrderCreate,
    BuildOrderDetail,
    BuildOrderResponse,
    BuildOrderStatusUpdate,
    BuildOrderUpdate,
)
from partsledger.services.production.build_order_service import BuildOrderService

router = APIRouter()

@router.post("/", response_model=BuildOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_build_order(
    build_data: BuildOrderCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Plan a new build"""
    service = BuildOrderService(db)
    return await service.create_build_order(build_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[BuildOrderResponse])
async def get_build_orders(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    status: Optional[BuildOrderStatus] = Query(None),
    product_name: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BuildOrderService(db)
    return await service.get_build_orders(
        page_index=page_index,
        page_size=page_size,
        status=status,
        product_name=product_name,
        search=search
    )

@router.get("/active", response_model=List[BuildOrderResponse])
async def get_active_builds(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BuildOrderService(db)
    return await service.get_active_builds()

@router.get("/{build_id}", response_model=BuildOrderResponse)
async def get_build_order(
    build_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BuildOrderService(db)
    return await service.get_build_order(build_id)

@router.get("/{build_id}/detail", response_model=BuildOrderDetail)
async def get_build_detail(
    build_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Build with its current material feasibility"""
    service = BuildOrderService(db)
    return await service.get_build_detail(build_id)

@router.put("/{build_id}", response_model=BuildOrderResponse)
async def update_build_order(
    build_id: int,
    build_data: BuildOrderUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BuildOrderService(db)
    return await service.update_build_order(build_id, build_data, current_operator.name)

@router.put("/{build_id}/status", response_model=BuildOrderResponse)
async def update_build_status(
    build_id: int,
    status_data: BuildOrderStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Move the build along its lifecycle; reserves, releases or consumes materials"""
    service = BuildOrderService(db)
    return await service.update_status(build_id, status_data.status, current_operator.name, status_data.notes)

@router.post("/{build_id}/complete", response_model=BuildOrderResponse)
async def complete_build(
    build_id: int,
    completion: BuildCompleteRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Finish QC and consume the reserved materials"""
    service = BuildOrderService(db)
    return await service.complete_build(build_id, completion, current_operator.name)
