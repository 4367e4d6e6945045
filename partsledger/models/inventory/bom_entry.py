from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, JSON, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship
from partsledger.db.base import BaseModel

class BOMEntry(BaseModel):
    __tablename__ = 'bom_entries'

    product_name = Column(String(200), nullable=False, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    quantity_per_unit = Column(Integer, nullable=False)
    reference_designator = Column(String(200))  # e.g. "R1, R2, R5"
    placement = Column(String(20))  # top | bottom | through_hole
    is_optional = Column(Boolean, nullable=False, default=False)
    substitute_component_ids = Column(JSON, default=list)
    bom_version = Column(String(50), nullable=False, default="1.0")
    notes = Column(Text)

    __table_args__ = (
        UniqueConstraint('product_name', 'component_id', 'bom_version', name='uq_bom_entry_product_component_version'),
        CheckConstraint('quantity_per_unit > 0', name='ck_bom_entry_quantity_positive'),
    )

    # Relationships
    component = relationship("Component", back_populates="bom_entries")
