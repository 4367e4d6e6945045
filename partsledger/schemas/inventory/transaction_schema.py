from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel
from partsledger.models.shared.enums import TransactionType, ReferenceType

class InventoryTransactionResponse(BaseModel):
    id: int
    transaction_type: TransactionType
    component_id: int
    location_id: int
    stock_record_id: int
    to_location_id: Optional[int] = None
    quantity: int
    reserved_change: int
    previous_qty: int
    new_qty: int
    reference_type: Optional[ReferenceType] = None
    reference_id: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    performed_by: str
    timestamp: datetime

    class Config:
        from_attributes = True

class ReplayResult(BaseModel):
    component_id: int
    location_id: int
    entry_count: int
    replayed_quantity: int
    replayed_reserved: int
    actual_quantity: Optional[int] = None
    actual_reserved: Optional[int] = None
    chain_intact: bool
    consistent: bool
    breaks: List[int] = []
