from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional
from partsledger.api.dependencies import Operator, get_current_operator, require_admin
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import SupplierStatus
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.purchase.supplier_schema import SupplierCreate, SupplierResponse, SupplierUpdate
from partsledger.services.purchase.supplier_service import SupplierService

router = APIRouter()

@router.post("/", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_supplier(
    supplier_data: SupplierCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Create a new supplier"""
    service = SupplierService(db)
    return await service.create_supplier(supplier_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[SupplierResponse])
async def get_suppliers(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    status: Optional[SupplierStatus] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get all suppliers"""
    service = SupplierService(db)
    return await service.get_suppliers(page_index=page_index, page_size=page_size, status=status, search=search)

@router.get("/{supplier_id}", response_model=SupplierResponse)
async def get_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = SupplierService(db)
    return await service.get_supplier(supplier_id)

@router.put("/{supplier_id}", response_model=SupplierResponse)
async def update_supplier(
    supplier_id: int,
    supplier_data: SupplierUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = SupplierService(db)
    return await service.update_supplier(supplier_id, supplier_data, current_operator.name)

@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(require_admin)
):
    """Soft delete a supplier that has no purchase orders"""
    service = SupplierService(db)
    await service.delete_supplier(supplier_id, current_operator.name)
