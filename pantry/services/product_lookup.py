"""Cache-aside resolution of barcodes to product metadata.

The product record in the store doubles as the lookup cache. A record whose
lookup_status is 'found' is returned as-is; any negative status is a
memoized miss and is never re-queried automatically (there is no expiry,
only an explicit ``forget``). Everything else goes to the product API. The
classified outcome is merge-written back so the quantity survives.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from pantry.db.store import RemoteStore, SERVER_TIMESTAMP, METADATA_COLLECTION
from pantry.errors import (
    CacheWriteFailed,
    InputError,
    NetworkUnavailable,
    ProductLookupFailed,
    ProductNoData,
    ProductNotFound,
    StoreError,
)
from pantry.schemas.inventory import QuantityStrategy
from pantry.schemas.product import LookupStatus, NEGATIVE_STATUSES, ProductInfo, ProductMetadata
from pantry.services.inventory_ledger import InventoryLedger, coerce_quantity
from pantry.services.network import NetworkStatus
from pantry.services.product_api_client import ProductApiClient
from pantry.services.validation import validate_barcode

logger = logging.getLogger(__name__)

_LOOKUP_FIELDS = ("lookup_status", "name", "image_url", "brands")


def _status_of(record: Dict[str, Any]) -> Optional[LookupStatus]:
    try:
        return LookupStatus(record.get("lookup_status"))
    except ValueError:
        return None


def _metadata_from_record(record: Dict[str, Any]) -> ProductMetadata:
    return ProductMetadata(
        name=record["name"],
        image_url=record.get("image_url"),
        brands=record.get("brands"),
    )


class ProductLookupService:
    """Service layer for barcode resolution

    Args:
        store: Remote store handle, or None when it failed to initialize
        api_client: Product API client
        network: Reachability signal; None is treated as offline
        ledger: When given with the LEDGER strategy, quantities come from the
            inventory log instead of the record's quantity field
    """

    def __init__(
        self,
        store: Optional[RemoteStore],
        api_client: ProductApiClient,
        network: Optional[NetworkStatus] = None,
        ledger: Optional[InventoryLedger] = None,
    ):
        self.store = store
        self.api_client = api_client
        self.network = network
        self.ledger = ledger
        self._in_flight: Dict[str, asyncio.Future] = {}

    async def resolve(self, barcode: str) -> Optional[ProductInfo]:
        """Resolve a barcode to its metadata and current quantity

        Concurrent calls for the same barcode share one lookup.

        Returns:
            ProductInfo, or None if the product is unknown, the lookup failed,
            the host is offline or the store is unavailable
        """
        try:
            validate_barcode(barcode, "resolve")
        except InputError as e:
            logger.warning(str(e))
            return None
        if self.store is None:
            logger.error(f"Remote store not initialized; cannot resolve {barcode}")
            return None

        pending = self._in_flight.get(barcode)
        if pending is None:
            pending = asyncio.ensure_future(self._resolve(barcode))
            self._in_flight[barcode] = pending
            pending.add_done_callback(lambda done: self._finish_lookup(barcode, done))
        else:
            logger.debug(f"Joining in-flight lookup for {barcode}")
        # A cancelled caller must not cancel the lookup other callers are awaiting
        return await asyncio.shield(pending)

    def _finish_lookup(self, barcode: str, done: asyncio.Future):
        if self._in_flight.get(barcode) is done:
            del self._in_flight[barcode]

    async def _resolve(self, barcode: str) -> Optional[ProductInfo]:
        record = await self._read_record(barcode)
        if record is not None:
            status = _status_of(record)
            logger.debug(f"Cache check for {barcode}. Status: {status}, record: {record}")

            if status is LookupStatus.FOUND and record.get("name"):
                logger.info(f"Cache hit for {barcode}: {record['name']}")
                quantity = await self._quantity(barcode, record)
                return ProductInfo(metadata=_metadata_from_record(record), quantity=quantity)

            if status in NEGATIVE_STATUSES:
                logger.info(f"Skipping API lookup for {barcode} due to previous status: {status.value}")
                return None

        logger.info(f"Cache miss or invalid state for {barcode}, fetching from product API")
        try:
            await self._ensure_online()
        except NetworkUnavailable as e:
            # No was_offline record: a later online retry must not be blocked
            logger.info(f"Offline, cannot look up new barcode {barcode}: {e}")
            return None

        status, metadata = await self._fetch(barcode)
        try:
            await self._write_outcome(barcode, status, metadata)
        except CacheWriteFailed as e:
            logger.error(f"{e}; returning uncached result", exc_info=True)

        if metadata is None:
            return None

        return ProductInfo(metadata=metadata, quantity=await self._fresh_quantity(barcode))

    async def _read_record(self, barcode: str) -> Optional[Dict[str, Any]]:
        try:
            return await self.store.get(METADATA_COLLECTION, barcode)
        except StoreError as e:
            logger.error(f"Error reading metadata cache for {barcode}: {e}", exc_info=True)
            return None

    async def _ensure_online(self):
        if self.network is None:
            raise NetworkUnavailable("no network status configured")
        try:
            online = await self.network.is_online()
        except Exception as e:
            logger.warning(f"Reachability check failed, assuming offline: {e}")
            online = False
        if not online:
            raise NetworkUnavailable("product API host unreachable")

    async def _fetch(self, barcode: str):
        """Call the product API and classify the outcome

        Returns:
            (LookupStatus, ProductMetadata or None)
        """
        try:
            metadata = await self.api_client.fetch_product(barcode)
        except ProductNotFound:
            status = LookupStatus.NOT_FOUND
        except ProductNoData:
            status = LookupStatus.NO_DATA
        except ProductLookupFailed as e:
            logger.warning(f"Product lookup failed for {barcode}: {e}")
            status = LookupStatus.LOOKUP_FAILED
        else:
            logger.info(f"API lookup success for {barcode}: {metadata.name}")
            return LookupStatus.FOUND, metadata

        logger.info(f"API lookup for {barcode} returned no product. Status to cache: {status.value}")
        return status, None

    async def _write_outcome(self, barcode: str, status: LookupStatus, metadata: Optional[ProductMetadata]):
        fields: Dict[str, Any] = {
            "barcode": barcode,
            "lookup_status": status.value,
            "last_checked": SERVER_TIMESTAMP,
        }
        if metadata is not None:
            fields.update(metadata.model_dump())
        try:
            await self.store.set(METADATA_COLLECTION, barcode, fields, merge=True)
        except StoreError as e:
            raise CacheWriteFailed(f"Failed to update cache for {barcode}: {e}") from e
        logger.info(f"Cached result for {barcode} with status: {status.value}")

    def _quantities_from_log(self) -> bool:
        return self.ledger is not None and self.ledger.strategy is QuantityStrategy.LEDGER

    async def _quantity(self, barcode: str, record: Dict[str, Any]) -> int:
        if self._quantities_from_log():
            return await self.ledger.sum_log(barcode)
        return coerce_quantity(record.get("quantity"))

    async def _fresh_quantity(self, barcode: str) -> int:
        if self._quantities_from_log():
            return await self.ledger.sum_log(barcode)
        # Re-read: a concurrent increment may have landed after the cache write
        record = await self._read_record(barcode)
        return coerce_quantity(record.get("quantity")) if record else 0

    async def forget(self, barcode: str) -> bool:
        """Clear the cached lookup for a barcode so the next resolve fetches again

        The quantity on the record is kept.

        Returns:
            True if the cache entry was cleared
        """
        try:
            validate_barcode(barcode, "forget")
        except InputError as e:
            logger.warning(str(e))
            return False
        if self.store is None:
            logger.error(f"Remote store not initialized; cannot forget {barcode}")
            return False

        fields: Dict[str, Any] = {field: None for field in _LOOKUP_FIELDS}
        fields["barcode"] = barcode
        try:
            await self.store.set(METADATA_COLLECTION, barcode, fields, merge=True)
        except StoreError as e:
            logger.error(f"Failed to clear cached lookup for {barcode}: {e}", exc_info=True)
            return False
        logger.info(f"Cleared cached lookup for {barcode}")
        return True
