"""Typed provenance attached to system-generated alerts.

The ``trigger`` field is the discriminator; the payload is stored as JSON in
``alerts.trigger_context`` and validated on the way in and out.
"""
from datetime import date
from typing import Annotated, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter


class StockMonitorContext(BaseModel):
    trigger: Literal["stock_monitor"] = "stock_monitor"
    stock_record_id: int
    location_id: int
    quantity: int
    minimum_stock: int
    incoming_qty: int = 0


class PurchaseOrderOverdueContext(BaseModel):
    trigger: Literal["po_overdue_monitor"] = "po_overdue_monitor"
    po_number: str
    po_status: str
    expected_delivery: date
    days_overdue: int


class TaskEscalationContext(BaseModel):
    trigger: Literal["task_escalation"] = "task_escalation"
    escalation_level: int
    hours_overdue: float
    assigned_to: Optional[str] = None


class CycleCountContext(BaseModel):
    trigger: Literal["cycle_count"] = "cycle_count"
    stock_record_id: int
    previous_qty: int
    counted_qty: int
    discrepancy: int
    counted_by: str


AlertProvenance = Annotated[
    Union[StockMonitorContext, PurchaseOrderOverdueContext, TaskEscalationContext, CycleCountContext],
    Field(discriminator="trigger"),
]

provenance_adapter = TypeAdapter(AlertProvenance)


def dump_provenance(context) -> dict:
    return provenance_adapter.dump_python(provenance_adapter.validate_python(context), mode="json")
