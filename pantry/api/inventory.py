from fastapi import APIRouter, Depends, status
import logging

from pantry.api.dependencies import get_ledger
from pantry.schemas.inventory import InventoryAdjustment, QuantityResponse, QuantityStrategy
from pantry.services.inventory_ledger import InventoryLedger

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/inventory",
    tags=["Inventory"]
)


@router.get(
    "/{barcode}",
    response_model=QuantityResponse,
    summary="Get the quantity for a barcode",
    description="""
    Current quantity for a barcode, computed with the configured strategy:

    - `counter`: the running total stored on the product record
    - `ledger`: the sum of every logged adjustment

    Unknown barcodes have quantity 0. Quantities may be negative.
    """,
    responses={
        200: {"description": "Current quantity"}
    }
)
async def get_quantity(
    barcode: str,
    ledger: InventoryLedger = Depends(get_ledger)
):
    """Get the current quantity"""
    quantity = await ledger.current_quantity(barcode)
    return QuantityResponse(barcode=barcode, quantity=quantity, strategy=ledger.strategy)


@router.post(
    "/{barcode}/adjustments",
    response_model=QuantityResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Adjust the quantity for a barcode",
    description="""
    Record a signed quantity change. Positive deltas add stock, negative deltas
    record consumption. No lower bound is enforced.

    The change is accepted even when it cannot be persisted (the failure is
    logged), so the returned quantity is the best current reading.
    """,
    responses={
        202: {"description": "Adjustment accepted, current quantity returned"},
        422: {"description": "Delta is not an integer"}
    }
)
async def adjust_quantity(
    barcode: str,
    adjustment: InventoryAdjustment,
    ledger: InventoryLedger = Depends(get_ledger)
):
    """Record a quantity change"""
    logger.info(f"Adjusting {barcode} by {adjustment.delta} ({ledger.strategy.value})")
    await ledger.record(barcode, adjustment.delta)
    quantity = await ledger.current_quantity(barcode)
    return QuantityResponse(barcode=barcode, quantity=quantity, strategy=ledger.strategy)


@router.get(
    "/{barcode}/log",
    response_model=QuantityResponse,
    summary="Sum the inventory log for a barcode",
    description="""
    Recompute the quantity from the append-only inventory log, regardless of
    the configured strategy. Entries with an invalid delta are skipped.
    """,
    responses={
        200: {"description": "Log total"}
    }
)
async def get_log_total(
    barcode: str,
    ledger: InventoryLedger = Depends(get_ledger)
):
    """Sum all logged adjustments"""
    total = await ledger.sum_log(barcode)
    return QuantityResponse(barcode=barcode, quantity=total, strategy=QuantityStrategy.LEDGER)
