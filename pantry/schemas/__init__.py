# Package exports - these allow cleaner imports like:
# from pantry.schemas import ProductInfo, QuantityStrategy
from pantry.schemas.product import LookupStatus, NEGATIVE_STATUSES, ProductMetadata, ProductInfo
from pantry.schemas.inventory import QuantityStrategy, InventoryAdjustment, QuantityResponse
