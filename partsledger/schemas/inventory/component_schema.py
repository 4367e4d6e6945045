from typing import Optional, Dict
from datetime import datetime
from pydantic import BaseModel, validator
from partsledger.models.shared.enums import ComponentStatus

class ComponentBase(BaseModel):
    part_number: str
    name: str
    description: Optional[str] = None
    category: str
    subcategory: Optional[str] = None
    manufacturer: Optional[str] = None
    manufacturer_part_number: Optional[str] = None
    unit_of_measure: str = "PCS"
    notes: Optional[str] = None

    @validator('part_number', 'name', 'category')
    def validate_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError('Value must not be blank')
        return v.strip()

class ComponentCreate(ComponentBase):
    status: ComponentStatus = ComponentStatus.ACTIVE

class ComponentUpdate(BaseModel):
    part_number: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    subcategory: Optional[str] = None
    manufacturer: Optional[str] = None
    manufacturer_part_number: Optional[str] = None
    unit_of_measure: Optional[str] = None
    status: Optional[ComponentStatus] = None
    notes: Optional[str] = None

class ComponentResponse(ComponentBase):
    id: int
    status: ComponentStatus
    created_at: datetime
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None

    class Config:
        from_attributes = True

class ComponentInfo(BaseModel):
    id: int
    part_number: str
    name: str

    class Config:
        from_attributes = True

class ComponentStats(BaseModel):
    total: int
    by_category: Dict[str, int]
    by_status: Dict[str, int]
