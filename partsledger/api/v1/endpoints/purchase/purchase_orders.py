from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from partsledger.api.dependencies import Operator, get_current_operator
from partsledger.core.database import get_async_session
from partsledger.models.shared.enums import PurchaseOrderStatus
from partsledger.schemas.common.pagination import PaginatedResponse
from partsledger.schemas.purchase.purchase_order_schema import (
    PurchaseOrderCreate,
    PurchaseOrderLineCreate,
    PurchaseOrderResponse,
    PurchaseOrderStatusUpdate,
    PurchaseOrderUpdate,
)
from partsledger.schemas.purchase.receiving_schema import (
    ReceiveShipmentRequest,
    ReceiveShipmentResult,
    ReceivingDetails,
)
from partsledger.services.purchase.purchase_order_service import PurchaseOrderService
from partsledger.services.purchase.receiving_service import ReceivingService

router = APIRouter()

@router.post("/", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
async def create_purchase_order(
    po_data: PurchaseOrderCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Create a draft purchase order; the PO number is generated when not given"""
    service = PurchaseOrderService(db)
    return await service.create_purchase_order(po_data, current_operator.name)

@router.get("/", response_model=PaginatedResponse[PurchaseOrderResponse])
async def get_purchase_orders(
    page_index: int = Query(1, ge=1),
    page_size: int = Query(100, ge=1, le=1000),
    status: Optional[PurchaseOrderStatus] = Query(None),
    supplier_id: Optional[int] = Query(None),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get purchase orders with optional filters"""
    service = PurchaseOrderService(db)
    return await service.get_purchase_orders(
        page_index=page_index,
        page_size=page_size,
        status=status,
        supplier_id=supplier_id,
        search=search
    )

@router.get("/receivable", response_model=List[PurchaseOrderResponse])
async def get_receivable_orders(
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Orders that can take a shipment now"""
    service = PurchaseOrderService(db)
    return await service.get_receivable_orders()

@router.get("/number/{po_number}", response_model=PurchaseOrderResponse)
async def get_purchase_order_by_number(
    po_number: str,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = PurchaseOrderService(db)
    return await service.get_by_po_number(po_number)

@router.get("/{po_id}", response_model=PurchaseOrderResponse)
async def get_purchase_order(
    po_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Get purchase order by ID"""
    service = PurchaseOrderService(db)
    return await service.get_purchase_order(po_id)

@router.put("/{po_id}", response_model=PurchaseOrderResponse)
async def update_purchase_order(
    po_id: int,
    po_data: PurchaseOrderUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = PurchaseOrderService(db)
    return await service.update_purchase_order(po_id, po_data, current_operator.name)

@router.put("/{po_id}/status", response_model=PurchaseOrderResponse)
async def update_purchase_order_status(
    po_id: int,
    status_data: PurchaseOrderStatusUpdate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Move the order along its lifecycle"""
    service = PurchaseOrderService(db)
    return await service.update_status(po_id, status_data.status, current_operator.name, status_data.notes)

@router.post("/{po_id}/lines", response_model=PurchaseOrderResponse)
async def add_line(
    po_id: int,
    line_data: PurchaseOrderLineCreate,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = PurchaseOrderService(db)
    return await service.add_line(po_id, line_data, current_operator.name)

@router.delete("/{po_id}/lines/{line_id}", response_model=PurchaseOrderResponse)
async def remove_line(
    po_id: int,
    line_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    service = PurchaseOrderService(db)
    return await service.remove_line(po_id, line_id, current_operator.name)

@router.get("/{po_id}/receiving", response_model=ReceivingDetails)
async def get_receiving_details(
    po_id: int,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Outstanding lines with the locations already holding each component"""
    service = ReceivingService(db)
    return await service.get_receiving_details(po_id)

@router.post("/{po_id}/receive", response_model=ReceiveShipmentResult)
async def receive_shipment(
    po_id: int,
    shipment: ReceiveShipmentRequest,
    db: AsyncSession = Depends(get_async_session),
    current_operator: Operator = Depends(get_current_operator)
):
    """Receive a shipment against this order; all lines apply or none do"""
    service = ReceivingService(db)
    return await service.receive_shipment(po_id, shipment, current_operator.name)
