from sqlalchemy import Column, Integer, String, DateTime, Text, ForeignKey, Enum as SQLEnum, Index
from partsledger.db.base import BaseModel
from partsledger.models.shared.enums import TransactionType, ReferenceType
from partsledger.utils.date_time import utc_now

class InventoryTransaction(BaseModel):
    """Append-only ledger entry.

    ``quantity`` is the signed change to on-hand quantity (zero for reserve and
    unreserve entries); ``reserved_change`` is the signed change to the
    reservation. ``previous_qty``/``new_qty`` bracket the on-hand quantity.
    """
    __tablename__ = 'inventory_transactions'

    transaction_type = Column(SQLEnum(TransactionType), nullable=False, index=True)
    component_id = Column(Integer, ForeignKey('components.id'), nullable=False, index=True)
    location_id = Column(Integer, ForeignKey('locations.id'), nullable=False, index=True)
    stock_record_id = Column(Integer, ForeignKey('stock_records.id'), nullable=False, index=True)
    to_location_id = Column(Integer, ForeignKey('locations.id'), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    reserved_change = Column(Integer, nullable=False, default=0)
    previous_qty = Column(Integer, nullable=False)
    new_qty = Column(Integer, nullable=False)
    reference_type = Column(SQLEnum(ReferenceType), nullable=True)
    reference_id = Column(String(100), nullable=True)
    reason = Column(String(500))
    notes = Column(Text)
    performed_by = Column(String(100), nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now, index=True)

    __table_args__ = (
        Index('ix_inventory_transactions_reference', 'reference_type', 'reference_id'),
    )
