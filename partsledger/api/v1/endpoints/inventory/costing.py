from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.schemas.inventory.costing_schema import CostSnapshotCreate, ProductCostEstimate, ProductCostResponse
from partsledger.services.inventory.costing_service import CostingService

router = APIRouter()

@router.get("/estimate/{product_name}", response_model=ProductCostEstimate)
async def estimate_product_cost(
    product_name: str,
    quantity: int = Query(1, gt=0),
    bom_version: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Material cost of a product from its BOM and current component prices"""
    service = CostingService(db)
    return await service.calculate_product_cost(product_name, quantity, bom_version)

@router.post("/snapshot", response_model=ProductCostResponse, status_code=status.HTTP_201_CREATED)
async def save_cost_snapshot(
    snapshot_data: CostSnapshotCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = CostingService(db)
    return await service.save_snapshot(snapshot_data, current_operator.name)

@router.get("/history", response_model=List[ProductCostResponse])
async def get_cost_history(
    product_name: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=200),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = CostingService(db)
    return await service.get_cost_history(product_name, limit)

@router.get("/latest", response_model=List[ProductCostResponse])
async def get_latest_costs(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Most recent snapshot per product"""
    service = CostingService(db)
    return await service.get_latest_per_product()
