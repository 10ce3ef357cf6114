from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional


class LookupStatus(str, Enum):
    """Outcome of a product API lookup, as cached on the product record"""
    FOUND = "found"
    NOT_FOUND = "not_found"
    NO_DATA = "no_data"
    LOOKUP_FAILED = "lookup_failed"
    WAS_OFFLINE = "was_offline"


# Cached outcomes that are never re-queried automatically
NEGATIVE_STATUSES = frozenset({
    LookupStatus.NOT_FOUND,
    LookupStatus.NO_DATA,
    LookupStatus.LOOKUP_FAILED,
    LookupStatus.WAS_OFFLINE,
})


class ProductMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="Display name (brand prefixed when known)", examples=["Ferrero - Nutella"])
    image_url: Optional[str] = Field(None, description="Product image URL")
    brands: Optional[str] = Field(None, description="Comma separated brand names", examples=["Ferrero"])


class ProductInfo(BaseModel):
    metadata: ProductMetadata
    quantity: int = Field(0, description="Current quantity for the barcode")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "metadata": {
                    "name": "Ferrero - Nutella",
                    "image_url": "https://images.openfoodfacts.org/images/products/301/762/042/2003/front_en.jpg",
                    "brands": "Ferrero"
                },
                "quantity": 2
            }
        }
    )
