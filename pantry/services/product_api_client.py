"""Client for the public product lookup API (Open Food Facts v2)"""
import httpx
import logging
from typing import Any, Dict, List, Optional

from pantry.config import settings
from pantry.errors import ProductLookupFailed, ProductNoData, ProductNotFound
from pantry.schemas.product import ProductMetadata

logger = logging.getLogger(__name__)


def display_name(product_name: str, brands: Optional[str]) -> str:
    """Prefix the product name with "<brands> - " unless it already carries that prefix"""
    product_name = product_name.strip()
    brands = (brands or "").strip()
    if not brands or product_name.lower().startswith(f"{brands} - ".lower()):
        return product_name
    return f"{brands} - {product_name}"


def _optional_text(value) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def parse_product_payload(barcode: str, data: Any) -> ProductMetadata:
    """Map a successful API payload to ProductMetadata

    Raises:
        ProductNoData: If the payload reports no product or an empty product name
    """
    if not isinstance(data, dict) or data.get("status") == 0:
        raise ProductNoData(barcode, f"No product data for barcode {barcode}")

    product = data.get("product")
    if not isinstance(product, dict):
        raise ProductNoData(barcode, f"No product data for barcode {barcode}")

    product_name = product.get("product_name")
    if not isinstance(product_name, str) or not product_name.strip():
        raise ProductNoData(barcode, f"Barcode {barcode} has no product name")

    # Optional fields of the wrong type are dropped, not fatal
    brands = _optional_text(product.get("brands"))
    image_url = _optional_text(product.get("image_url"))
    return ProductMetadata(
        name=display_name(product_name, brands),
        image_url=image_url,
        brands=brands,
    )


class ProductApiClient:
    """Client for fetching product metadata by barcode"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        fields: Optional[List[str]] = None,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.product_api_base_url).rstrip('/')
        self.fields = fields if fields is not None else [
            f.strip() for f in settings.product_api_fields.split(",") if f.strip()
        ]
        self.timeout = timeout if timeout is not None else settings.product_api_timeout
        self.user_agent = user_agent or settings.product_api_user_agent
        self._transport = transport

    def _get_headers(self) -> Dict[str, str]:
        """Get headers for product API requests"""
        return {
            "Accept": "application/json",
            "User-Agent": self.user_agent,
        }

    async def fetch_product(self, barcode: str) -> ProductMetadata:
        """Look up one barcode

        Args:
            barcode: EAN/UPC code

        Returns:
            ProductMetadata for a product with a usable name

        Raises:
            ProductNotFound: The API answered 404
            ProductNoData: The API answered without a product name
            ProductLookupFailed: Transport error, other non-2xx status, or a body that is not JSON
        """
        params = {"fields": ",".join(self.fields)} if self.fields else None
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout,
                headers=self._get_headers(),
                transport=self._transport,
            ) as client:
                response = await client.get(f"{self.base_url}/product/{barcode}.json", params=params)
        except httpx.HTTPError as e:
            logger.warning(f"Network error fetching product {barcode}: {e}")
            raise ProductLookupFailed(barcode, f"Network error: {e}") from e

        if response.status_code == 404:
            raise ProductNotFound(barcode, f"Product API has no entry for barcode {barcode}")
        if not response.is_success:
            logger.warning(f"Product API returned {response.status_code} for barcode {barcode}")
            raise ProductLookupFailed(
                barcode,
                f"Product API returned {response.status_code}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProductLookupFailed(barcode, f"Undecodable product API response: {e}") from e

        return parse_product_payload(barcode, data)
