from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum as SQLEnum
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import LocationType, LocationStatus

class Location(BaseModel):
    __tablename__ = 'locations'

    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    location_type = Column(SQLEnum(LocationType), nullable=False, default=LocationType.SHELF)
    parent_id = Column(Integer, ForeignKey('locations.id'), nullable=True, index=True)
    description = Column(Text)
    capacity = Column(Integer)
    status = Column(SQLEnum(LocationStatus), nullable=False, default=LocationStatus.ACTIVE)

    # Relationships
    parent = relationship("Location", remote_side="Location.id", back_populates="children")
    children = relationship("Location", back_populates="parent")
    stock_records = relationship("StockRecord", back_populates="location")
