from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.schemas.purchase.component_supplier_schema import (
    ComponentSupplierCreate,
    ComponentSupplierResponse,
    ComponentSupplierUpdate,
)
from partsledger.services.purchase.component_supplier_service import ComponentSupplierService

router = APIRouter()

@router.post("/", response_model=ComponentSupplierResponse, status_code=status.HTTP_201_CREATED)
async def create_component_supplier(
    link_data: ComponentSupplierCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Record that a supplier sells a component"""
    service = ComponentSupplierService(db)
    return await service.create_link(link_data, current_operator.name)

@router.get("/component/{component_id}", response_model=List[ComponentSupplierResponse])
async def get_suppliers_for_component(
    component_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = ComponentSupplierService(db)
    return await service.list_by_component(component_id)

@router.get("/supplier/{supplier_id}", response_model=List[ComponentSupplierResponse])
async def get_components_for_supplier(
    supplier_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = ComponentSupplierService(db)
    return await service.list_by_supplier(supplier_id)

@router.put("/{link_id}", response_model=ComponentSupplierResponse)
async def update_component_supplier(
    link_id: int,
    link_data: ComponentSupplierUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = ComponentSupplierService(db)
    return await service.update_link(link_id, link_data, current_operator.name)

@router.delete("/{link_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_component_supplier(
    link_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = ComponentSupplierService(db)
    await service.delete_link(link_id, current_operator.name)
