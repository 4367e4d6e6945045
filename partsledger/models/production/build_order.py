from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum, CheckConstraint
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import BuildOrderStatus, BuildPriority, QcStatus

class BuildOrder(BaseModel):
    __tablename__ = 'build_orders'

    build_number = Column(String(50), unique=True, nullable=False, index=True)
    product_name = Column(String(200), nullable=False, index=True)
    bom_version = Column(String(50))
    quantity = Column(Integer, nullable=False)
    status = Column(SQLEnum(BuildOrderStatus), nullable=False, default=BuildOrderStatus.PLANNED, index=True)
    priority = Column(SQLEnum(BuildPriority), nullable=False, default=BuildPriority.NORMAL)
    scheduled_start = Column(DateTime(timezone=True))
    actual_start = Column(DateTime(timezone=True))
    completed_at = Column(DateTime(timezone=True))
    assigned_to = Column(String(100))
    qc_status = Column(SQLEnum(QcStatus))
    qc_passed_count = Column(Integer)
    qc_failed_count = Column(Integer)
    qc_notes = Column(Text)
    notes = Column(Text)
    version = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        CheckConstraint('quantity > 0', name='ck_build_order_quantity_positive'),
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    reservations = relationship(
        "BuildReservation",
        back_populates="build_order",
        cascade="all, delete-orphan",
        order_by="BuildReservation.id",
        lazy="selectin",
    )
