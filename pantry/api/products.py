from fastapi import APIRouter, Depends, HTTPException, Response, status
import logging

from pantry.api.dependencies import get_lookup_service
from pantry.schemas.product import ProductInfo
from pantry.services.product_lookup import ProductLookupService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/products",
    tags=["Products"]
)


@router.get(
    "/{barcode}",
    response_model=ProductInfo,
    summary="Resolve a barcode",
    description="""
    Resolve a barcode to product metadata and its current quantity.

    **Caching:**
    - Successful lookups are served from the product record without calling the product API
    - Negative outcomes (not found, no data, failed lookup) are cached too and never retried automatically
    - Use `DELETE /products/{barcode}/lookup` to clear a cached outcome

    **Offline:**
    When the product API host is unreachable, an uncached barcode resolves to 404
    and nothing is cached, so a later request can still succeed.
    """,
    responses={
        200: {"description": "Product metadata and quantity"},
        404: {"description": "No product data available for this barcode"}
    }
)
async def resolve_product(
    barcode: str,
    lookup_service: ProductLookupService = Depends(get_lookup_service)
):
    """Resolve a barcode (cache first, then the product API)"""
    info = await lookup_service.resolve(barcode)
    if info is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No product data for barcode {barcode}"
        )
    return info


@router.delete(
    "/{barcode}/lookup",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Clear a cached lookup",
    description="""
    Clear the cached lookup outcome for a barcode so the next resolution calls
    the product API again. The barcode's quantity is kept.
    """,
    responses={
        204: {"description": "Cached lookup cleared"},
        503: {"description": "Remote store unavailable"}
    }
)
async def forget_product_lookup(
    barcode: str,
    lookup_service: ProductLookupService = Depends(get_lookup_service)
):
    """Clear a cached lookup outcome"""
    if not await lookup_service.forget(barcode):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Could not clear cached lookup for barcode {barcode}"
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)
