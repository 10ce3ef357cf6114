# Package exports - these allow cleaner imports like:
# from pantry.models import ProductMetadataRecord, InventoryLogEntry
# Used by alembic/env.py for migration autogenerate
from pantry.models.product_metadata import ProductMetadataRecord
from pantry.models.inventory_log import InventoryLogEntry
