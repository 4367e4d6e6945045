from sqlalchemy import Column, String, Text, Enum as SQLEnum
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import ComponentStatus

class Component(BaseModel):
    __tablename__ = 'components'

    part_number = Column(String(100), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    category = Column(String(100), nullable=False, index=True)  # passive, ic, connector, ...
    subcategory = Column(String(100))
    manufacturer = Column(String(200))
    manufacturer_part_number = Column(String(100))
    unit_of_measure = Column(String(20), nullable=False, default="PCS")
    status = Column(SQLEnum(ComponentStatus), nullable=False, default=ComponentStatus.ACTIVE)
    notes = Column(Text)

    # Relationships
    stock_records = relationship("StockRecord", back_populates="component")
    bom_entries = relationship("BOMEntry", back_populates="component")
