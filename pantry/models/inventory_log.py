from sqlalchemy import Column, Integer, String, Text, DateTime, Index
from sqlalchemy.sql import func
import uuid
from pantry.db.database import Base


class InventoryLogEntry(Base):
    """Immutable quantity delta for a barcode (rows are only ever inserted)"""
    __tablename__ = "inventory_log"

    id = Column(String(32), primary_key=True, default=lambda: uuid.uuid4().hex)
    barcode = Column(Text, nullable=False)
    delta = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("idx_inventory_log_barcode", "barcode"),
    )
