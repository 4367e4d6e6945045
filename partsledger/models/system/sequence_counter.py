from sqlalchemy import Column, Integer, String
from partsledger.db.base import BaseModel

class SequenceCounter(BaseModel):
    """Monotonic counter per scope, e.g. ``po:2025`` or ``build:Widget:2025``"""
    __tablename__ = 'sequence_counters'

    scope = Column(String(200), unique=True, nullable=False, index=True)
    last_value = Column(Integer, nullable=False, default=0)
