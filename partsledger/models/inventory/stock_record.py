from typing import Optional
from sqlalchemy import (
    Column, Integer, String, DateTime, Numeric, ForeignKey, Enum as SQLEnum,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import StockStatus


def compute_stock_status(quantity: int, minimum_stock: Optional[int], maximum_stock: Optional[int]) -> StockStatus:
    """Derive the stock status from quantity and thresholds"""
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if minimum_stock is not None and quantity <= minimum_stock:
        return StockStatus.LOW_STOCK
    if maximum_stock is not None and quantity > maximum_stock:
        return StockStatus.OVERSTOCK
    return StockStatus.IN_STOCK


class StockRecord(BaseModel):
    """Quantity of one component at one location.

    Only the stock ledger writes ``quantity`` and ``reserved_qty``; every such
    write is paired with an inventory transaction row.
    """
    __tablename__ = 'stock_records'

    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey('locations.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=0)
    reserved_qty = Column(Integer, nullable=False, default=0)
    available_qty = Column(Integer, nullable=False, default=0)
    minimum_stock = Column(Integer, nullable=True)
    maximum_stock = Column(Integer, nullable=True)
    cost_per_unit = Column(Numeric(12, 4), nullable=True)
    status = Column(SQLEnum(StockStatus), nullable=False, default=StockStatus.OUT_OF_STOCK)
    last_counted_at = Column(DateTime(timezone=True))
    last_counted_by = Column(String(100))
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint('component_id', 'location_id', name='uq_stock_record_component_location'),
        CheckConstraint('quantity >= 0', name='ck_stock_record_quantity_non_negative'),
        CheckConstraint('reserved_qty >= 0', name='ck_stock_record_reserved_non_negative'),
        CheckConstraint('reserved_qty <= quantity', name='ck_stock_record_reserved_within_quantity'),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    component = relationship("Component", back_populates="stock_records")
    location = relationship("Location", back_populates="stock_records")

    def refresh_derived(self) -> None:
        self.available_qty = self.quantity - self.reserved_qty
        self.status = compute_stock_status(self.quantity, self.minimum_stock, self.maximum_stock)
