from typing import Optional, List
from decimal import Decimal
from pydantic import BaseModel, Field, validator
from datetime import datetime, date
from partsledger.models.shared.enums import PurchaseOrderStatus, PurchaseOrderLineStatus
from partsledger.schemas.inventory.component_schema import ComponentInfo
from partsledger.schemas.purchase.supplier_schema import SupplierInfo

class PurchaseOrderLineBase(BaseModel):
    component_id: int
    quantity_ordered: int
    unit_price: Decimal
    supplier_part_number: Optional[str] = None
    notes: Optional[str] = None

    @validator('quantity_ordered')
    def validate_quantity(cls, v):
        if v <= 0:
            raise ValueError('Quantity ordered must be positive')
        return v

    @validator('unit_price')
    def validate_unit_price(cls, v):
        if v < 0:
            raise ValueError('Unit price must not be negative')
        return v

class PurchaseOrderLineCreate(PurchaseOrderLineBase):
    pass

class PurchaseOrderLineResponse(PurchaseOrderLineBase):
    id: int
    purchase_order_id: int
    quantity_received: int
    line_total: Decimal
    status: PurchaseOrderLineStatus
    component: Optional[ComponentInfo] = None

    class Config:
        from_attributes = True

class PurchaseOrderBase(BaseModel):
    supplier_id: int
    expected_delivery: Optional[date] = None
    tracking_number: Optional[str] = None
    shipping_cost: Decimal = Field(Decimal('0'), ge=0)
    tax_amount: Decimal = Field(Decimal('0'), ge=0)
    notes: Optional[str] = None

class PurchaseOrderCreate(PurchaseOrderBase):
    po_number: Optional[str] = None
    lines: List[PurchaseOrderLineCreate] = []

class PurchaseOrderUpdate(BaseModel):
    expected_delivery: Optional[date] = None
    tracking_number: Optional[str] = None
    shipping_cost: Optional[Decimal] = Field(None, ge=0)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

class PurchaseOrderStatusUpdate(BaseModel):
    status: PurchaseOrderStatus
    notes: Optional[str] = None

class PurchaseOrderResponse(PurchaseOrderBase):
    id: int
    po_number: str
    status: PurchaseOrderStatus
    order_date: Optional[datetime] = None
    actual_delivery: Optional[datetime] = None
    subtotal: Decimal
    total_amount: Decimal
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    lines: List[PurchaseOrderLineResponse] = []
    supplier: Optional[SupplierInfo] = None

    class Config:
        from_attributes = True

class IncomingQuantity(BaseModel):
    component_id: int
    incoming_qty: int
    purchase_order_count: int
