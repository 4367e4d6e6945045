from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import ReferenceType, TransactionType
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.inventory.transaction_schema import InventoryTransactionResponse, ReplayResult
from partsledger.services.inventory.transaction_service import TransactionService

router = APIRouter()

@router.get("/", response_model=PaginatedResponse[InventoryTransactionResponse])
async def get_transactions(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    component_id: Optional[int] = Query(None),
    location_id: Optional[int] = Query(None),
    transaction_type: Optional[TransactionType] = Query(None),
    reference_type: Optional[ReferenceType] = Query(None),
    reference_id: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Browse the transaction log, newest first"""
    service = TransactionService(db)
    return await service.get_transactions(
        page_index=page_index,
        page_size=page_size,
        component_id=component_id,
        location_id=location_id,
        transaction_type=transaction_type,
        reference_type=reference_type,
        reference_id=reference_id
    )

@router.get("/reference/{reference_type}/{reference_id}", response_model=List[InventoryTransactionResponse])
async def get_transactions_by_reference(
    reference_type: ReferenceType,
    reference_id: str,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TransactionService(db)
    return await service.get_by_reference(reference_type, reference_id)

@router.get("/history/{component_id}/{location_id}", response_model=List[InventoryTransactionResponse])
async def get_history(
    component_id: int,
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = TransactionService(db)
    return await service.get_history(component_id, location_id)

@router.get("/replay/{component_id}/{location_id}", response_model=ReplayResult)
async def replay_history(
    component_id: int,
    location_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Rebuild the quantity from the log and compare it with the stock record"""
    service = TransactionService(db)
    return await service.replay_history(component_id, location_id)
