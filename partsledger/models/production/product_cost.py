from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime, ForeignKey, JSON, Enum as SQLEnum
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import CostType
from partsledger.utils.date_time import utc_now

class ProductCost(BaseModel):
    """A saved cost roll-up for a product, estimated from the BOM or actual for a build"""
    __tablename__ = 'product_costs'

    product_name = Column(String(200), nullable=False, index=True)
    build_order_id = Column(Integer, ForeignKey('build_orders.id'), index=True)
    cost_type = Column(SQLEnum(CostType), nullable=False, default=CostType.ESTIMATE)
    bom_version = Column(String(50))
    quantity = Column(Integer, nullable=False)
    material_cost = Column(Numeric(14, 4), nullable=False)
    labor_cost = Column(Numeric(14, 4))
    overhead_cost = Column(Numeric(14, 4))
    total_cost = Column(Numeric(14, 4), nullable=False)
    cost_per_unit = Column(Numeric(14, 4), nullable=False)
    line_items = Column(JSON, nullable=False, default=list)
    calculated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)
    notes = Column(Text)
