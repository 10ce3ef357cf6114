import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from pantry.db.store import METADATA_COLLECTION, RemoteStore
from pantry.errors import StoreIOError
from pantry.schemas.inventory import QuantityStrategy
from pantry.schemas.product import LookupStatus, ProductInfo, ProductMetadata
from pantry.services.inventory_ledger import InventoryLedger
from pantry.services.network import NetworkStatus
from pantry.services.product_api_client import ProductApiClient
from pantry.services.product_lookup import ProductLookupService


BARCODE = "3017620422003"


class TestCacheHit:
    @pytest.mark.asyncio
    async def test_first_resolution_fetches_and_caches(self, store, product_api, make_lookup):
        product_api.found(BARCODE, "Widget", brands="Acme", image_url="https://img.test/w.jpg")
        service = make_lookup(store)

        info = await service.resolve(BARCODE)

        assert info == ProductInfo(
            metadata=ProductMetadata(name="Acme - Widget", image_url="https://img.test/w.jpg", brands="Acme"),
            quantity=0,
        )
        record = await store.get(METADATA_COLLECTION, BARCODE)
        assert record["lookup_status"] == "found"
        assert record["name"] == "Acme - Widget"
        assert record["last_checked"] is not None

    @pytest.mark.asyncio
    async def test_name_already_prefixed_with_brand_is_kept(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Acme - Widget", brands="Acme")

        info = await make_lookup(memory_store).resolve(BARCODE)

        assert info.metadata.name == "Acme - Widget"
        assert info.quantity == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("extra", [{"brands": ["Coca-Cola"]}, {"image_url": 42}])
    async def test_malformed_optional_fields_still_resolve(self, store, product_api, make_lookup, extra):
        product_api.respond(BARCODE, 200, json={"status": 1, "product": {"product_name": "Zero", **extra}})
        service = make_lookup(store)

        info = await service.resolve(BARCODE)
        again = await service.resolve(BARCODE)

        assert info == ProductInfo(metadata=ProductMetadata(name="Zero"), quantity=0)
        assert again == info
        assert product_api.calls == [BARCODE]
        assert (await store.get(METADATA_COLLECTION, BARCODE))["lookup_status"] == "found"

    @pytest.mark.asyncio
    async def test_brand_leading_name_is_still_prefixed(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Coca-Cola Zero", brands="Coca-Cola")

        info = await make_lookup(memory_store).resolve(BARCODE)

        assert info.metadata.name == "Coca-Cola - Coca-Cola Zero"

    @pytest.mark.asyncio
    async def test_second_resolution_is_served_from_cache(self, store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella", brands="Ferrero")
        service = make_lookup(store)

        first = await service.resolve(BARCODE)
        second = await service.resolve(BARCODE)

        assert first == second
        assert product_api.calls == [BARCODE]

    @pytest.mark.asyncio
    async def test_cache_hit_does_not_need_network(self, memory_store, product_api, make_lookup):
        await memory_store.set(METADATA_COLLECTION, BARCODE, {
            "barcode": BARCODE,
            "lookup_status": "found",
            "name": "Ferrero - Nutella",
            "brands": "Ferrero",
            "quantity": 4,
        })

        info = await make_lookup(memory_store, online=False).resolve(BARCODE)

        assert info.metadata.name == "Ferrero - Nutella"
        assert info.quantity == 4
        assert product_api.calls == []

    @pytest.mark.asyncio
    async def test_found_record_without_name_is_refetched(self, memory_store, product_api, make_lookup):
        await memory_store.set(METADATA_COLLECTION, BARCODE, {"barcode": BARCODE, "lookup_status": "found"})
        product_api.found(BARCODE, "Nutella")

        info = await make_lookup(memory_store).resolve(BARCODE)

        assert info.metadata.name == "Nutella"
        assert product_api.calls == [BARCODE]

    @pytest.mark.asyncio
    async def test_unrecognised_status_is_refetched(self, memory_store, product_api, make_lookup):
        await memory_store.set(METADATA_COLLECTION, BARCODE, {"barcode": BARCODE, "lookup_status": "stale"})
        product_api.found(BARCODE, "Nutella")

        info = await make_lookup(memory_store).resolve(BARCODE)

        assert info is not None
        assert (await memory_store.get(METADATA_COLLECTION, BARCODE))["lookup_status"] == "found"


class TestNegativeCaching:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["not_found", "no_data", "lookup_failed", "was_offline"])
    async def test_cached_negative_status_skips_api(self, store, product_api, make_lookup, status):
        await store.set(METADATA_COLLECTION, BARCODE, {"barcode": BARCODE, "lookup_status": status})
        product_api.found(BARCODE, "Nutella")

        assert await make_lookup(store).resolve(BARCODE) is None
        assert product_api.calls == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("configure, expected", [
        (lambda api: None, LookupStatus.NOT_FOUND),
        (lambda api: api.respond(BARCODE, 200, json={"status": 0}), LookupStatus.NO_DATA),
        (lambda api: api.respond(BARCODE, 200, json={"status": 1, "product": {"product_name": ""}}),
         LookupStatus.NO_DATA),
        (lambda api: api.respond(BARCODE, 503, text="busy"), LookupStatus.LOOKUP_FAILED),
        (lambda api: api.fail(BARCODE), LookupStatus.LOOKUP_FAILED),
    ])
    async def test_api_outcome_is_memoized(self, store, product_api, make_lookup, configure, expected):
        configure(product_api)
        service = make_lookup(store)

        assert await service.resolve(BARCODE) is None
        assert await service.resolve(BARCODE) is None

        assert product_api.calls == [BARCODE]
        record = await store.get(METADATA_COLLECTION, BARCODE)
        assert record["lookup_status"] == expected.value
        assert record.get("name") is None

    @pytest.mark.asyncio
    async def test_forget_allows_a_new_lookup(self, store, product_api, make_lookup):
        service = make_lookup(store)
        assert await service.resolve(BARCODE) is None

        product_api.found(BARCODE, "Nutella")
        assert await service.forget(BARCODE) is True
        info = await service.resolve(BARCODE)

        assert info.metadata.name == "Nutella"
        assert product_api.calls == [BARCODE, BARCODE]

    @pytest.mark.asyncio
    async def test_forget_keeps_quantity(self, store, product_api, make_lookup):
        await store.set(METADATA_COLLECTION, BARCODE, {
            "barcode": BARCODE, "lookup_status": "found", "name": "Nutella", "quantity": 3,
        })

        assert await make_lookup(store).forget(BARCODE) is True

        record = await store.get(METADATA_COLLECTION, BARCODE)
        assert record["lookup_status"] is None
        assert record["name"] is None
        assert record["quantity"] == 3

    @pytest.mark.asyncio
    async def test_forget_rejects_empty_barcode(self, memory_store, make_lookup):
        assert await make_lookup(memory_store).forget("") is False

    @pytest.mark.asyncio
    async def test_forget_without_store(self, make_lookup):
        assert await make_lookup(None).forget(BARCODE) is False


class TestOffline:
    @pytest.mark.asyncio
    async def test_offline_cold_cache_writes_nothing(self, store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella")

        assert await make_lookup(store, online=False).resolve(BARCODE) is None

        assert product_api.calls == []
        assert await store.get(METADATA_COLLECTION, BARCODE) is None

    @pytest.mark.asyncio
    async def test_offline_miss_does_not_block_later_online_lookup(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella")

        assert await make_lookup(memory_store, online=False).resolve(BARCODE) is None
        info = await make_lookup(memory_store, online=True).resolve(BARCODE)

        assert info.metadata.name == "Nutella"

    @pytest.mark.asyncio
    async def test_missing_network_signal_counts_as_offline(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella")

        assert await make_lookup(memory_store, network=None).resolve(BARCODE) is None
        assert product_api.calls == []

    @pytest.mark.asyncio
    async def test_failing_network_signal_counts_as_offline(self, memory_store, product_api, make_lookup):
        network = AsyncMock(spec=NetworkStatus)
        network.is_online.side_effect = RuntimeError("probe crashed")
        product_api.found(BARCODE, "Nutella")

        assert await make_lookup(memory_store, network=network).resolve(BARCODE) is None
        assert product_api.calls == []


class TestStoreFailures:
    @pytest.mark.asyncio
    async def test_empty_barcode_performs_no_io(self):
        store = AsyncMock(spec=RemoteStore)
        api_client = AsyncMock(spec=ProductApiClient)
        service = ProductLookupService(store, api_client)

        assert await service.resolve("") is None

        store.get.assert_not_called()
        store.set.assert_not_called()
        api_client.fetch_product.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_not_initialized(self, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella")

        assert await make_lookup(None).resolve(BARCODE) is None
        assert product_api.calls == []

    @pytest.mark.asyncio
    async def test_read_error_is_treated_as_miss(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella")
        service = make_lookup(memory_store)

        with patch.object(memory_store, "get", side_effect=StoreIOError("read timeout")):
            info = await service.resolve(BARCODE)

        assert info.metadata.name == "Nutella"
        assert info.quantity == 0
        assert product_api.calls == [BARCODE]
        assert (await memory_store.get(METADATA_COLLECTION, BARCODE))["lookup_status"] == "found"

    @pytest.mark.asyncio
    async def test_write_failure_still_returns_metadata(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella", brands="Ferrero")
        service = make_lookup(memory_store)

        with patch.object(memory_store, "set", side_effect=StoreIOError("permission denied")):
            info = await service.resolve(BARCODE)

        assert info.metadata.name == "Ferrero - Nutella"
        assert info.quantity == 0
        assert await memory_store.get(METADATA_COLLECTION, BARCODE) is None


class TestQuantity:
    @pytest.mark.asyncio
    async def test_lookup_merge_preserves_existing_quantity(self, store, product_api, make_lookup):
        await store.set(METADATA_COLLECTION, BARCODE, {"barcode": BARCODE, "quantity": 7})
        product_api.found(BARCODE, "Nutella")

        info = await make_lookup(store).resolve(BARCODE)

        assert info.quantity == 7
        record = await store.get(METADATA_COLLECTION, BARCODE)
        assert record["quantity"] == 7
        assert record["lookup_status"] == "found"

    @pytest.mark.asyncio
    async def test_counter_quantity_is_reported(self, store, product_api, make_lookup):
        ledger = InventoryLedger(store, strategy=QuantityStrategy.COUNTER)
        product_api.found(BARCODE, "Nutella")
        service = make_lookup(store, ledger=ledger)

        await ledger.increment_counter(BARCODE, 2)
        first = await service.resolve(BARCODE)
        await ledger.increment_counter(BARCODE, 3)
        second = await service.resolve(BARCODE)

        assert first.quantity == 2
        assert second.quantity == 5

    @pytest.mark.asyncio
    async def test_ledger_quantity_comes_from_log(self, store, product_api, make_lookup):
        ledger = InventoryLedger(store, strategy=QuantityStrategy.LEDGER)
        product_api.found(BARCODE, "Nutella")
        service = make_lookup(store, ledger=ledger)

        await ledger.append_log_entry(BARCODE, 5)
        await ledger.append_log_entry(BARCODE, -2)
        first = await service.resolve(BARCODE)
        await ledger.append_log_entry(BARCODE, 1)
        second = await service.resolve(BARCODE)

        assert first.quantity == 3
        assert second.quantity == 4


class TestInFlightLookups:
    @pytest.mark.asyncio
    async def test_concurrent_resolutions_share_one_api_call(self, memory_store, product_api, make_lookup):
        product_api.found(BARCODE, "Nutella")
        service = make_lookup(memory_store)

        results = await asyncio.gather(*(service.resolve(BARCODE) for _ in range(5)))

        assert product_api.calls == [BARCODE]
        assert all(result == results[0] for result in results)
        assert results[0].metadata.name == "Nutella"
        assert service._in_flight == {}

    @pytest.mark.asyncio
    async def test_different_barcodes_are_looked_up_independently(self, memory_store, product_api, make_lookup):
        product_api.found("111", "Milk")
        product_api.found("222", "Bread")
        service = make_lookup(memory_store)

        milk, bread = await asyncio.gather(service.resolve("111"), service.resolve("222"))

        assert milk.metadata.name == "Milk"
        assert bread.metadata.name == "Bread"
        assert sorted(product_api.calls) == ["111", "222"]
