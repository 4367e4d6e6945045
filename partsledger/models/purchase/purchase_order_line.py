from sqlalchemy import Column, Integer, String, Text, Numeric, ForeignKey, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import PurchaseOrderLineStatus

class PurchaseOrderLine(BaseModel):
    __tablename__ = 'purchase_order_lines'

    purchase_order_id = Column(Integer, ForeignKey('purchase_orders.id'), nullable=False, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    supplier_part_number = Column(String(100))
    quantity_ordered = Column(Integer, nullable=False)
    quantity_received = Column(Integer, nullable=False, default=0)
    unit_price = Column(Numeric(12, 4), nullable=False)
    line_total = Column(Numeric(12, 2), nullable=False)
    status = Column(SQLEnum(PurchaseOrderLineStatus), nullable=False, default=PurchaseOrderLineStatus.PENDING)
    notes = Column(Text)

    __table_args__ = (
        CheckConstraint('quantity_ordered > 0', name='ck_po_line_quantity_ordered_positive'),
        CheckConstraint(
            'quantity_received >= 0 AND quantity_received <= quantity_ordered',
            name='ck_po_line_quantity_received_bounds',
        ),
    )

    # Relationships
    purchase_order = relationship("PurchaseOrder", back_populates="lines")
    component = relationship("Component", lazy="selectin")

    @property
    def quantity_remaining(self) -> int:
        return self.quantity_ordered - (self.quantity_received or 0)
