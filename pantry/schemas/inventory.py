from enum import Enum
from pydantic import BaseModel, Field


class QuantityStrategy(str, Enum):
    """How quantities are tracked for a barcode.

    COUNTER keeps a mutable running total on the product record.
    LEDGER appends immutable deltas to the inventory log and sums them on read;
    the record's quantity is then only a cached projection of that sum.
    """
    COUNTER = "counter"
    LEDGER = "ledger"


class InventoryAdjustment(BaseModel):
    delta: int = Field(..., description="Signed quantity change (negative for consumption)", examples=[1, -2])


class QuantityResponse(BaseModel):
    barcode: str = Field(..., description="Product barcode", examples=["3017620422003"])
    quantity: int = Field(..., description="Current quantity (may be negative)", examples=[3])
    strategy: QuantityStrategy = Field(..., description="Quantity tracking strategy used to compute the value")
