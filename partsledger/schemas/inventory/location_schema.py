from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, validator
from partsledger.models.shared.enums import LocationType, LocationStatus

class LocationBase(BaseModel):
    code: str
    name: str
    location_type: LocationType = LocationType.SHELF
    parent_id: Optional[int] = None
    description: Optional[str] = None
    capacity: Optional[int] = None

    @validator('code')
    def validate_code(cls, v):
        if not v or not v.strip():
            raise ValueError('Location code must not be blank')
        return v.strip().upper()

class LocationCreate(LocationBase):
    status: LocationStatus = LocationStatus.ACTIVE

class LocationUpdate(BaseModel):
    code: Optional[str] = None
    name: Optional[str] = None
    location_type: Optional[LocationType] = None
    parent_id: Optional[int] = None
    description: Optional[str] = None
    capacity: Optional[int] = None
    status: Optional[LocationStatus] = None

class LocationResponse(LocationBase):
    id: int
    status: LocationStatus
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class LocationInfo(BaseModel):
    id: int
    code: str
    name: str

    class Config:
        from_attributes = True

class LocationTreeNode(BaseModel):
    id: int
    code: str
    name: str
    location_type: LocationType
    status: LocationStatus
    children: List["LocationTreeNode"] = []


LocationTreeNode.model_rebuild()
