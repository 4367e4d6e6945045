from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator, require_admin
from partsledger.core.database import get_async_session
from partsledger.schemas.inventory.location_schema import (
    LocationCreate,
    LocationResponse,
    LocationTreeNode,
    LocationUpdate,
)
from partsledger.schemas.inventory.stock_schema import LocationStockSummary
from partsledger.services.inventory.location_service import LocationService
from partsledger.services.inventory.stock_service import StockService

router = APIRouter()

@router.post("/", response_model=LocationResponse, status_code=status.HTTP_201_CREATED)
async def create_location(
    location_data: LocationCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Create a new storage location"""
    service = LocationService(db)
    return await service.create_location(location_data, current_operator.name)

@router.get("/", response_model=List[LocationResponse])
async def get_locations(
    search: Optional[str] = Query(None),
    parent_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = LocationService(db)
    return await service.get_locations(search=search, parent_id=parent_id)

@router.get("/tree", response_model=List[LocationTreeNode])
async def get_location_tree(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Location hierarchy rooted at top-level locations"""
    service = LocationService(db)
    return await service.get_tree()

@router.get("/{location_id}", response_model=LocationResponse)
async def get_location(
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = LocationService(db)
    return await service.get_location(location_id)

@router.get("/{location_id}/children", response_model=List[LocationResponse])
async def get_location_children(
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = LocationService(db)
    return await service.get_children(location_id)

@router.get("/{location_id}/stock-summary", response_model=LocationStockSummary)
async def get_location_stock_summary(
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get stock summary for a location"""
    service = StockService(db)
    return await service.get_location_summary(location_id)

@router.put("/{location_id}", response_model=LocationResponse)
async def update_location(
    location_id: int,
    location_data: LocationUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = LocationService(db)
    return await service.update_location(location_id, location_data, current_operator.name)

@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_location(
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(require_admin)
):
    service = LocationService(db)
    await service.delete_location(location_id, current_operator.name)
