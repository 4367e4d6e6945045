from typing import Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, validator

class ComponentSupplierBase(BaseModel):
    supplier_part_number: Optional[str] = None
    unit_price: Optional[Decimal] = Field(None, ge=0)
    currency: str = "USD"
    min_order_qty: Optional[int] = Field(None, gt=0)
    lead_time_days: Optional[int] = Field(None, ge=0)
    url: Optional[str] = None
    in_stock: Optional[bool] = None
    is_preferred: bool = False
    notes: Optional[str] = None

    @validator('currency')
    def validate_currency(cls, v):
        if not v or len(v.strip()) != 3:
            raise ValueError('Currency must be a three letter code')
        return v.strip().upper()

class ComponentSupplierCreate(ComponentSupplierBase):
    component_id: int
    supplier_id: int

class ComponentSupplierUpdate(BaseModel):
    supplier_part_number: Optional[str] = None
    unit_price: Optional[Decimal] = Field(None, ge=0)
    currency: Optional[str] = None
    min_order_qty: Optional[int] = Field(None, gt=0)
    lead_time_days: Optional[int] = Field(None, ge=0)
    url: Optional[str] = None
    in_stock: Optional[bool] = None
    is_preferred: Optional[bool] = None
    notes: Optional[str] = None

    @validator('currency')
    def validate_currency(cls, v):
        if v is not None and len(v.strip()) != 3:
            raise ValueError('Currency must be a three letter code')
        return v.strip().upper() if v else v

class ComponentSupplierResponse(ComponentSupplierBase):
    id: int
    component_id: int
    supplier_id: int
    last_price_check: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    part_number: Optional[str] = None
    component_name: Optional[str] = None
    supplier_code: Optional[str] = None
    supplier_name: Optional[str] = None

    class Config:
        from_attributes = True
