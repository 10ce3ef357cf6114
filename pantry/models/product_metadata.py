from sqlalchemy import Column, Integer, String, Text, DateTime, CheckConstraint, Index
from sqlalchemy.sql import func
from pantry.db.database import Base


class ProductMetadataRecord(Base):
    """Cached product lookup plus the barcode's mutable quantity

    One row per barcode. The lookup fields (name, image_url, brands) are only
    populated when lookup_status is 'found'. The quantity column is shared with
    the inventory ledger: it is the running counter, or the cached log total
    when quantities are tracked as an append-only log.
    """
    __tablename__ = "product_metadata"

    barcode = Column(Text, primary_key=True)
    name = Column(Text)
    image_url = Column(Text)
    brands = Column(Text)
    lookup_status = Column(String(20))
    last_checked = Column(DateTime(timezone=True))
    quantity = Column(Integer, nullable=False, default=0, server_default="0")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "lookup_status IS NULL OR lookup_status IN "
            "('found', 'not_found', 'no_data', 'lookup_failed', 'was_offline')",
            name="lookup_status_valid"
        ),
        Index("idx_product_metadata_status", "lookup_status"),
    )
