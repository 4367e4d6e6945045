from decimal import Decimal
from sqlalchemy import Column, Integer, String, DateTime, Text, Numeric, ForeignKey, Enum as SQLEnum, Date
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import PurchaseOrderStatus

class PurchaseOrder(BaseModel):
    __tablename__ = 'purchase_orders'

    po_number = Column(String(50), unique=True, nullable=False, index=True)
    supplier_id = Column(Integer, ForeignKey('suppliers.id'), nullable=False, index=True)
    status = Column(SQLEnum(PurchaseOrderStatus), nullable=False, default=PurchaseOrderStatus.DRAFT, index=True)
    order_date = Column(DateTime(timezone=True))
    expected_delivery = Column(Date, index=True)
    actual_delivery = Column(DateTime(timezone=True))
    tracking_number = Column(String(100))
    subtotal = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    shipping_cost = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    tax_amount = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    total_amount = Column(Numeric(12, 2), nullable=False, default=Decimal('0'))
    approved_by = Column(String(100))
    approved_at = Column(DateTime(timezone=True))
    notes = Column(Text)
    version = Column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    supplier = relationship("Supplier", back_populates="purchase_orders", lazy="selectin")
    lines = relationship(
        "PurchaseOrderLine",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderLine.id",
        lazy="selectin",
    )

    def recompute_totals(self) -> None:
        self.subtotal = sum((Decimal(line.line_total or 0) for line in self.lines), Decimal('0'))
        self.total_amount = self.subtotal + Decimal(self.shipping_cost or 0) + Decimal(self.tax_amount or 0)
