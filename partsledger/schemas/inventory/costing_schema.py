from typing import Optional, List
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field
from partsledger.models.shared.enums import CostSource, CostType

class CostLineItem(BaseModel):
    component_id: int
    part_number: str
    component_name: str
    quantity_per_unit: int
    unit_cost: Decimal
    total_cost: Decimal
    source: CostSource

class ProductCostEstimate(BaseModel):
    product_name: str
    quantity: int
    bom_version: Optional[str] = None
    material_cost: Decimal = Decimal("0")
    cost_per_unit: Decimal = Decimal("0")
    has_unknown_costs: bool = False
    line_items: List[CostLineItem] = []

class CostSnapshotCreate(BaseModel):
    product_name: str
    quantity: int = Field(1, gt=0)
    bom_version: Optional[str] = None
    build_order_id: Optional[int] = None
    cost_type: CostType = CostType.ESTIMATE
    labor_cost: Optional[Decimal] = Field(None, ge=0)
    overhead_cost: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None

class ProductCostResponse(BaseModel):
    id: int
    product_name: str
    build_order_id: Optional[int] = None
    cost_type: CostType
    bom_version: Optional[str] = None
    quantity: int
    material_cost: Decimal
    labor_cost: Optional[Decimal] = None
    overhead_cost: Optional[Decimal] = None
    total_cost: Decimal
    cost_per_unit: Decimal
    line_items: List[CostLineItem] = []
    calculated_at: datetime
    created_by: Optional[str] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True
