from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field, validator
from partsledger.models.shared.enums import BuildOrderStatus, BuildPriority, QcStatus
from partsledger.schemas.inventory.bom_schema import FeasibilityResult

class BuildOrderBase(BaseModel):
    product_name: str
    quantity: int = Field(..., gt=0)
    priority: BuildPriority = BuildPriority.NORMAL
    bom_version: Optional[str] = None
    scheduled_start: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

    @validator('product_name')
    def validate_product(cls, v):
        if not v or not v.strip():
            raise ValueError('Product name must not be blank')
        return v.strip()

class BuildOrderCreate(BuildOrderBase):
    build_number: Optional[str] = None

class BuildOrderUpdate(BaseModel):
    priority: Optional[BuildPriority] = None
    scheduled_start: Optional[datetime] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None

class BuildOrderStatusUpdate(BaseModel):
    status: BuildOrderStatus
    notes: Optional[str] = None

class BuildCompleteRequest(BaseModel):
    qc_passed_count: int = Field(..., ge=0)
    qc_failed_count: int = Field(0, ge=0)
    qc_notes: Optional[str] = None

class BuildReservationResponse(BaseModel):
    id: int
    stock_record_id: int
    component_id: int
    quantity: int

    class Config:
        from_attributes = True

class BuildOrderResponse(BuildOrderBase):
    id: int
    build_number: str
    status: BuildOrderStatus
    actual_start: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    qc_status: Optional[QcStatus] = None
    qc_passed_count: Optional[int] = None
    qc_failed_count: Optional[int] = None
    qc_notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    reservations: List[BuildReservationResponse] = []

    class Config:
        from_attributes = True

class BuildOrderDetail(BaseModel):
    build_order: BuildOrderResponse
    material_status: FeasibilityResult
    reserved_units: int
