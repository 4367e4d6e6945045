from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field
from partsledger.schemas.inventory.component_schema import ComponentInfo

class BOMEntryBase(BaseModel):
    product_name: str
    component_id: int
    quantity_per_unit: int = Field(..., gt=0)
    reference_designator: Optional[str] = None
    placement: Optional[str] = None
    is_optional: bool = False
    substitute_component_ids: List[int] = []
    bom_version: str = "1.0"
    notes: Optional[str] = None

class BOMEntryCreate(BOMEntryBase):
    pass

class BOMEntryUpdate(BaseModel):
    quantity_per_unit: Optional[int] = Field(None, gt=0)
    reference_designator: Optional[str] = None
    placement: Optional[str] = None
    is_optional: Optional[bool] = None
    substitute_component_ids: Optional[List[int]] = None
    bom_version: Optional[str] = None
    notes: Optional[str] = None

class BOMEntryResponse(BOMEntryBase):
    id: int
    created_at: datetime
    updated_at: Optional[datetime] = None
    component: Optional[ComponentInfo] = None

    class Config:
        from_attributes = True

class ProductBOMSummary(BaseModel):
    product_name: str
    bom_versions: List[str]
    entry_count: int
    total_parts_per_unit: int

class FeasibilityItem(BaseModel):
    component_id: int
    part_number: str
    component_name: str
    quantity_per_unit: int
    total_required: int
    total_available: int
    shortage: int
    is_optional: bool
    sufficient: bool
    substitute_available: int = 0

class FeasibilityResult(BaseModel):
    feasible: bool
    product_name: str
    build_quantity: int
    bom_version: Optional[str] = None
    shortages: int
    reason: Optional[str] = None
    items: List[FeasibilityItem] = []
