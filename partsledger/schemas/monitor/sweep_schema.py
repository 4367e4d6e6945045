from typing import Optional
from datetime import datetime
from pydantic import BaseModel

class SweepResult(BaseModel):
    """Counts reported by one monitor sweep"""
    sweep: str
    items_checked: int = 0
    alerts_created: int = 0
    alerts_resolved: int = 0
    alerts_escalated: int = 0
    escalated: int = 0
    skipped: int = 0
    errors: int = 0
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
