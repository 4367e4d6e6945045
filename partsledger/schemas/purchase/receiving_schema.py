from typing import Optional, List
from pydantic import BaseModel, validator
from partsledger.models.shared.enums import PurchaseOrderStatus, PurchaseOrderLineStatus

class ReceiptLine(BaseModel):
    line_id: int
    quantity: int
    location_id: int

    @validator('quantity')
    def validate_quantity(cls, v):
        if v < 0:
            raise ValueError('Received quantity must not be negative')
        return v

class ReceiveShipmentRequest(BaseModel):
    receipts: List[ReceiptLine]
    notes: Optional[str] = None

    @validator('receipts')
    def validate_receipts(cls, v):
        if not v:
            raise ValueError('At least one receipt line is required')
        return v

class ReceiptLineResult(BaseModel):
    line_id: int
    component_id: int
    location_id: int
    quantity: int
    quantity_received: int
    quantity_ordered: int
    line_status: PurchaseOrderLineStatus
    stock_record_id: int
    previous_qty: int
    new_qty: int
    transaction_id: int

class ReceiveShipmentResult(BaseModel):
    purchase_order_id: int
    po_number: str
    status: PurchaseOrderStatus
    fully_received: bool
    lines: List[ReceiptLineResult]
    alerts_resolved: int

class ExistingStockLocation(BaseModel):
    stock_record_id: int
    location_id: int
    location_code: str
    quantity: int

class ReceivingLineDetail(BaseModel):
    line_id: int
    component_id: int
    part_number: str
    component_name: str
    quantity_ordered: int
    quantity_received: int
    quantity_remaining: int
    status: PurchaseOrderLineStatus
    existing_locations: List[ExistingStockLocation] = []

class ReceivingDetails(BaseModel):
    purchase_order_id: int
    po_number: str
    status: PurchaseOrderStatus
    supplier_name: Optional[str] = None
    lines: List[ReceivingLineDetail]
