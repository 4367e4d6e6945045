from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from partsledger.api.dependencies import Operator, get_current_operator, require_admin
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import ComponentStatus
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.inventory.component_schema import (
    ComponentCreate,
    ComponentResponse,
    ComponentStats,
    ComponentUpdate,
)
from partsledger.schemas.inventory.stock_schema import ComponentStockTotal
from partsledger.schemas.purchase.purchase_order_schema import IncomingQuantity
from partsledger.services.inventory.component_service import ComponentService
from partsledger.services.inventory.stock_service import StockService
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService

router = APIRouter()

@router.post("/", response_model=ComponentResponse, status_code=status.HTTP_201_CREATED)
async def create_component(
    component_data: ComponentCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Create a new component"""
    service = ComponentService(db)
    return await service.create_component(component_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[ComponentResponse])
async def get_components(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    category: Optional[str] = Query(None),
    status: Optional[ComponentStatus] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get all components with optional filters"""
    service = ComponentService(db)
    return await service.get_components(
        page_index=page_index,
        page_size=page_size,
        category=category,
        status=status,
        search=search
    )

@router.get("/stats", response_model=ComponentStats)
async def get_component_stats(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = ComponentService(db)
    return await service.get_stats()

@router.get("/part-number/{part_number}", response_model=ComponentResponse)
async def get_component_by_part_number(
    part_number: str,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = ComponentService(db)
    return await service.get_by_part_number(part_number)

@router.get("/{component_id}", response_model=ComponentResponse)
async def get_component(
    component_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get component by ID"""
    service = ComponentService(db)
    return await service.get_component(component_id)

@router.get("/{component_id}/stock-total", response_model=ComponentStockTotal)
async def get_component_stock_total(
    component_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """On-hand, reserved and available totals across all locations"""
    service = StockService(db)
    return await service.get_component_total(component_id)

@router.get("/{component_id}/incoming", response_model=IncomingQuantity)
async def get_component_incoming(
    component_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Quantity still expected on open purchase orders"""
    service = PurchaseOrderService(db)
    return await service.get_incoming_summary(component_id)

@router.put("/{component_id}", response_model=ComponentResponse)
async def update_component(
    component_id: int,
    component_data: ComponentUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Update component"""
    service = ComponentService(db)
    return await service.update_component(component_id, component_data, current_operator.name)

@router.delete("/{component_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_component(
    component_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(require_admin)
):
    """Soft delete a component with no stock records or BOM usage"""
    service = ComponentService(db)
    await service.delete_component(component_id, current_operator.name)
