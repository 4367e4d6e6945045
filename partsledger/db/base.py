from sqlalchemy import Column, Integer, DateTime, Boolean, String
from sqlalchemy.orm import declarative_base
from partsledger.utils.date_time import utc_now

Base = declarative_base()


class BaseModel(Base):
    """Base model with common fields"""
    __abstract__ = True

    id = Column(Integer, primary_key=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), onupdate=utc_now)
    is_deleted = Column(Boolean, default=False, nullable=False)
    created_by = Column(String(100), nullable=True)
    updated_by = Column(String(100), nullable=True)
