from sqlalchemy import Column, Integer, String, Text, Numeric, Enum as SQLEnum
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import SupplierStatus

class Supplier(BaseModel):
    __tablename__ = 'suppliers'

    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String(200), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(255))
    phone = Column(String(50))
    website = Column(String(255))
    address = Column(Text)
    lead_time_days = Column(Integer)
    rating = Column(Numeric(3, 2))
    status = Column(SQLEnum(SupplierStatus), nullable=False, default=SupplierStatus.ACTIVE)
    notes = Column(Text)

    # Relationships
    purchase_orders = relationship("PurchaseOrder", back_populates="supplier")
