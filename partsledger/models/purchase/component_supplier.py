from sqlalchemy import Column, Integer, String, Text, Boolean, Numeric, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel

class ComponentSupplier(BaseModel):
    """Where a component can be bought, and at what price"""
    __tablename__ = 'component_suppliers'

    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False, index=True)
    supplier_part_number = Column(String(100))
    unit_price = Column(Numeric(12, 4))
    currency = Column(String(3), nullable=False, default="USD")
    min_order_qty = Column(Integer)
    lead_time_days = Column(Integer)
    url = Column(String(500))
    in_stock = Column(Boolean)
    is_preferred = Column(Boolean, nullable=False, default=False)
    last_price_check = Column(DateTime(timezone=True))
    notes = Column(Text)

    __table_args__ = (
        UniqueConstraint('component_id', 'supplier_id', name='uq_component_supplier_pair'),
    )

    # Relationships
    component = relationship("Component", lazy="selectin")
    supplier = relationship("Supplier", lazy="selectin")

    @property
    def part_number(self):
        return self.component.part_number if self.component else None

    @property
    def component_name(self):
        return self.component.name if self.component else None

    @property
    def supplier_code(self):
        return self.supplier.code if self.supplier else None

    @property
    def supplier_name(self):
        return self.supplier.name if self.supplier else None
