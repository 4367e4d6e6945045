from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel

class BuildReservation(BaseModel):
    """Stock held on one stock record for one build order"""
    __tablename__ = 'build_reservations'

    build_order_id = Column(Integer, ForeignKey('build_orders.id'), nullable=False, index=True)
    stock_record_id = Column(Integer, ForeignKey('stock_records.id'), nullable=False, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint('build_order_id', 'stock_record_id', name='uq_build_reservation_build_record'),
        CheckConstraint('quantity > 0', name='ck_build_reservation_quantity_positive'),
    )

    # Relationships
    build_order = relationship("BuildOrder", back_populates="reservations")
