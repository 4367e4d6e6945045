from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.schemas.inventory.bom_schema import (
    BOMEntryCreate,
    BOMEntryResponse,
    BOMEntryUpdate,
    FeasibilityResult,
    ProductBOMSummary,
)
from partsledger.services.inventory.bom_service import BOMService

router = APIRouter()

@router.post("/", response_model=BOMEntryResponse, status_code=status.HTTP_201_CREATED)
async def create_bom_entry(
    entry_data: BOMEntryCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BOMService(db)
    return await service.create_entry(entry_data, current_operator.name)

@router.get("/products", response_model=List[ProductBOMSummary])
async def get_products(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Products that have a BOM, with their versions"""
    service = BOMService(db)
    return await service.get_products()

@router.get("/product/{product_name}", response_model=List[BOMEntryResponse])
async def get_product_entries(
    product_name: str,
    bom_version: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BOMService(db)
    return await service.get_product_entries(product_name, bom_version)

@router.get("/product/{product_name}/feasibility", response_model=FeasibilityResult)
async def check_feasibility(
    product_name: str,
    quantity: int = Query(..., ge=1),
    bom_version: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Can this many units be built from unreserved stock?"""
    service = BOMService(db)
    return await service.check_feasibility(product_name, quantity, bom_version)

@router.get("/{entry_id}", response_model=BOMEntryResponse)
async def get_bom_entry(
    entry_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BOMService(db)
    return await service.get_entry(entry_id)

@router.put("/{entry_id}", response_model=BOMEntryResponse)
async def update_bom_entry(
    entry_id: int,
    entry_data: BOMEntryUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BOMService(db)
    return await service.update_entry(entry_id, entry_data, current_operator.name)

@router.delete("/{entry_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_bom_entry(
    entry_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = BOMService(db)
    await service.delete_entry(entry_id, current_operator.name)
