from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, validator
from partsledger.models.shared.enums import StockStatus, TransactionType
from partsledger.schemas.inventory.component_schema import ComponentInfo
from partsledger.schemas.inventory.location_schema import LocationInfo

class StockRecordCreate(BaseModel):
    component_id: int
    location_id: int
    quantity: int = Field(0, ge=0)
    minimum_stock: Optional[int] = Field(None, ge=0)
    maximum_stock: Optional[int] = Field(None, ge=0)
    cost_per_unit: Optional[Decimal] = None

class StockThresholdUpdate(BaseModel):
    minimum_stock: Optional[int] = Field(None, ge=0)
    maximum_stock: Optional[int] = Field(None, ge=0)
    cost_per_unit: Optional[Decimal] = None

class StockRecordResponse(BaseModel):
    id: int
    component_id: int
    location_id: int
    quantity: int
    reserved_qty: int
    available_qty: int
    minimum_stock: Optional[int] = None
    maximum_stock: Optional[int] = None
    cost_per_unit: Optional[Decimal] = None
    status: StockStatus
    last_counted_at: Optional[datetime] = None
    last_counted_by: Optional[str] = None
    updated_at: Optional[datetime] = None
    component: Optional[ComponentInfo] = None
    location: Optional[LocationInfo] = None

    class Config:
        from_attributes = True

class StockAdjustRequest(BaseModel):
    component_id: int
    location_id: int
    delta: int
    reason: str
    transaction_type: TransactionType = TransactionType.ADJUST

    @validator('delta')
    def validate_delta(cls, v):
        if v == 0:
            raise ValueError('Adjustment delta must not be zero')
        return v

class StockSetQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=0)
    reason: str

class StockReservationRequest(BaseModel):
    quantity: int = Field(..., gt=0)
    reason: Optional[str] = None

class StockCountRequest(BaseModel):
    counted_qty: int = Field(..., ge=0)
    notes: Optional[str] = None

class StockTransferRequest(BaseModel):
    component_id: int
    from_location_id: int
    to_location_id: int
    quantity: int = Field(..., gt=0)
    reason: Optional[str] = None

class StockMutationResult(BaseModel):
    stock_record_id: int
    previous_qty: int
    new_qty: int
    reserved_qty: int
    available_qty: int
    status: StockStatus
    transaction_id: int

class StockCountResult(StockMutationResult):
    discrepancy: int
    alert_id: Optional[int] = None

class StockTransferResult(BaseModel):
    source: StockMutationResult
    destination: StockMutationResult

class ComponentStockTotal(BaseModel):
    component_id: int
    total_quantity: int
    total_reserved: int
    total_available: int
    location_count: int

class LocationStockSummary(BaseModel):
    location_id: int
    record_count: int
    total_units: int
    low_stock_count: int
    out_of_stock_count: int
    total_value: Decimal

class LowStockReportItem(BaseModel):
    stock_record_id: int
    component_id: int
    part_number: str
    component_name: str
    location_id: int
    location_code: str
    quantity: int
    minimum_stock: Optional[int] = None
    status: StockStatus
    incoming_qty: int = 0

class LowStockReport(BaseModel):
    count: int
    items: List[LowStockReportItem]
