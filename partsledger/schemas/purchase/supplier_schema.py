from typing import Optional
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field, validator
from partsledger.models.shared.enums import SupplierStatus

class SupplierBase(BaseModel):
    code: str
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    lead_time_days: Optional[int] = Field(None, ge=0)
    rating: Optional[Decimal] = Field(None, ge=0, le=5)
    notes: Optional[str] = None

    @validator('code')
    def validate_code(cls, v):
        if not v or not v.strip():
            raise ValueError('Supplier code must not be blank')
        return v.strip().upper()

class SupplierCreate(SupplierBase):
    status: SupplierStatus = SupplierStatus.ACTIVE

class SupplierUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    lead_time_days: Optional[int] = Field(None, ge=0)
    rating: Optional[Decimal] = Field(None, ge=0, le=5)
    status: Optional[SupplierStatus] = None
    notes: Optional[str] = None

class SupplierResponse(SupplierBase):
    id: int
    status: SupplierStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SupplierInfo(BaseModel):
    id: int
    code: str
    name: str

    class Config:
        from_attributes = True
