"""Shared fixtures: stores, a scripted product API and service builders."""

import httpx
import pytest

from pantry.db.database import build_engine, create_schema
from pantry.db.memory_store import InMemoryStore
from pantry.db.sql_store import SqlAlchemyStore
from pantry.services.network import StaticNetworkStatus
from pantry.services.product_api_client import ProductApiClient
from pantry.services.product_lookup import ProductLookupService


class FakeProductApi:
    """Scripted stand-in for the Open Food Facts API behind httpx.MockTransport"""

    def __init__(self):
        self.responses = {}
        self.calls = []
        self.requests = []

    def found(self, barcode, product_name, brands=None, image_url=None):
        product = {"product_name": product_name}
        if brands is not None:
            product["brands"] = brands
        if image_url is not None:
            product["image_url"] = image_url
        self.responses[barcode] = (200, {"json": {"status": 1, "product": product}})

    def respond(self, barcode, status_code, **kwargs):
        self.responses[barcode] = (status_code, kwargs)

    def fail(self, barcode, exc_type=httpx.ConnectError):
        self.responses[barcode] = exc_type

    def handler(self, request: httpx.Request) -> httpx.Response:
        barcode = request.url.path.rsplit("/", 1)[-1].removesuffix(".json")
        self.calls.append(barcode)
        self.requests.append(request)
        response = self.responses.get(barcode)
        if response is None:
            return httpx.Response(404, json={"status": 0, "status_verbose": "product not found"})
        if isinstance(response, type) and issubclass(response, Exception):
            raise response("connection refused", request=request)
        status_code, kwargs = response
        return httpx.Response(status_code, **kwargs)

    def client(self) -> ProductApiClient:
        return ProductApiClient(
            base_url="https://off.test/api/v2",
            fields=["product_name", "brands", "image_url"],
            timeout=5.0,
            user_agent="pantry-tests/1.0",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture
def product_api():
    return FakeProductApi()


@pytest.fixture
def memory_store():
    return InMemoryStore()


@pytest.fixture
def sql_store(tmp_path):
    """SqlAlchemyStore on a fresh SQLite file."""
    engine = build_engine(f"sqlite:///{tmp_path / 'pantry.db'}")
    create_schema(engine)
    yield SqlAlchemyStore.from_engine(engine)
    engine.dispose()


@pytest.fixture(params=["memory", "sql"])
def store(request):
    """Run the test against both store implementations."""
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def make_lookup(product_api):
    def _make(store, online=True, ledger=None, network="static"):
        return ProductLookupService(
            store,
            product_api.client(),
            network=StaticNetworkStatus(online) if network == "static" else network,
            ledger=ledger,
        )

    return _make
