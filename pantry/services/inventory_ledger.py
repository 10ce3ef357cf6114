"""Quantity tracking for barcodes.

Two strategies are supported, selected once at construction:

* ``QuantityStrategy.COUNTER`` keeps the running total in the ``quantity``
  field of the product record and relies on the store's atomic Increment
  modifier. A read-then-write-back would drop concurrent updates.
* ``QuantityStrategy.LEDGER`` appends an immutable entry per change to the
  inventory log and computes the quantity by summing the deltas on read.
  Writes never contend on a shared field. The record's ``quantity`` is then
  refreshed as a cached projection and is not authoritative.

Errors never reach the caller: invalid input and store failures are logged
and the operation becomes a no-op (or returns 0 for reads).
"""
import logging
from typing import Optional

from pantry.db.store import (
    RemoteStore,
    Increment,
    SERVER_TIMESTAMP,
    METADATA_COLLECTION,
    INVENTORY_LOG_COLLECTION,
)
from pantry.errors import InputError, StoreError
from pantry.schemas.inventory import QuantityStrategy
from pantry.services.validation import validate_barcode, validate_delta

logger = logging.getLogger(__name__)


def _is_delta(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def coerce_quantity(value) -> int:
    """Stored quantity as an int; missing or malformed values count as 0"""
    return value if _is_delta(value) else 0


class InventoryLedger:
    """Service layer for inventory quantity changes"""

    def __init__(self, store: Optional[RemoteStore], strategy: QuantityStrategy = QuantityStrategy.LEDGER):
        self.store = store
        self.strategy = QuantityStrategy(strategy)

    def _check(self, operation: str, barcode: str, delta=0) -> bool:
        if self.store is None:
            logger.error(f"{operation}: remote store not initialized")
            return False
        try:
            validate_barcode(barcode, operation)
            validate_delta(delta, barcode, operation)
        except InputError as e:
            logger.warning(str(e))
            return False
        return True

    async def increment_counter(self, barcode: str, delta: int) -> None:
        """Atomically add ``delta`` to the record's quantity and refresh last_checked"""
        if not self._check("increment_counter", barcode, delta):
            return
        logger.info(f"increment_counter({barcode}, {delta})")
        try:
            await self.store.set(
                METADATA_COLLECTION,
                barcode,
                {
                    "barcode": barcode,
                    "quantity": Increment(delta),
                    "last_checked": SERVER_TIMESTAMP,
                },
                merge=True
            )
        except StoreError as e:
            logger.error(f"Failed to increment quantity for {barcode}: {e}", exc_info=True)

    async def append_log_entry(self, barcode: str, delta: int) -> None:
        """Record ``delta`` as a new immutable inventory log entry"""
        if not self._check("append_log_entry", barcode, delta):
            return
        logger.info(f"append_log_entry({barcode}, {delta})")
        try:
            await self.store.add(
                INVENTORY_LOG_COLLECTION,
                {
                    "barcode": barcode,
                    "delta": delta,
                    "timestamp": SERVER_TIMESTAMP,
                }
            )
        except StoreError as e:
            logger.error(f"Failed to append inventory log entry for {barcode}: {e}", exc_info=True)

    async def sum_log(self, barcode: str) -> int:
        """Sum every logged delta for ``barcode``

        Entries whose delta is not an integer are skipped with a warning.

        Returns:
            The total, 0 when there are no entries or the log cannot be read
        """
        if not self._check("sum_log", barcode):
            return 0
        try:
            entries = await self.store.query(INVENTORY_LOG_COLLECTION, "barcode", barcode)
        except StoreError as e:
            logger.error(f"Error getting inventory log for barcode {barcode}: {e}", exc_info=True)
            return 0

        if not entries:
            logger.info(f"No log entries found for barcode {barcode}")
            return 0

        total = 0
        skipped = 0
        for entry in entries:
            delta = entry.get("delta")
            if _is_delta(delta):
                total += delta
            else:
                skipped += 1
                logger.warning(f"Log entry {entry.get('id')} for barcode {barcode} has missing or invalid delta: {delta!r}")

        logger.info(
            f"Summed {len(entries) - skipped} log entries for {barcode} "
            f"({skipped} skipped): quantity {total}"
        )
        return total

    async def record(self, barcode: str, delta: int) -> None:
        """Apply a quantity change using the configured strategy"""
        if self.strategy is QuantityStrategy.COUNTER:
            await self.increment_counter(barcode, delta)
            return

        if not self._check("record", barcode, delta):
            return
        await self.append_log_entry(barcode, delta)
        await self._refresh_projection(barcode)

    async def _refresh_projection(self, barcode: str) -> None:
        total = await self.sum_log(barcode)
        try:
            await self.store.set(
                METADATA_COLLECTION,
                barcode,
                {"barcode": barcode, "quantity": total},
                merge=True
            )
        except StoreError as e:
            # The log stays authoritative; only the cached projection is stale
            logger.warning(f"Failed to refresh cached quantity for {barcode}: {e}")

    async def current_quantity(self, barcode: str) -> int:
        """Quantity according to the configured strategy (0 when unknown)"""
        if self.strategy is QuantityStrategy.LEDGER:
            return await self.sum_log(barcode)

        if not self._check("current_quantity", barcode):
            return 0
        try:
            record = await self.store.get(METADATA_COLLECTION, barcode)
        except StoreError as e:
            logger.error(f"Error reading quantity for barcode {barcode}: {e}", exc_info=True)
            return 0
        return coerce_quantity(record.get("quantity")) if record else 0
