from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import logging

from pantry import __version__
from pantry.config import settings
from pantry.db.database import init_db
from pantry.api import health, inventory, products
from pantry.errors import StoreUnavailable
from pantry.services.inventory_ledger import InventoryLedger
from pantry.services.network import create_network_status
from pantry.services.product_api_client import ProductApiClient
from pantry.services.product_lookup import ProductLookupService

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Pantry Service...")
    try:
        store = await init_db(settings)
    except StoreUnavailable as e:
        # Keep serving: every lookup and adjustment short-circuits without a store
        logger.error(f"PANTRY SERVICE: running without a remote store: {e}")
        store = None

    ledger = InventoryLedger(store, strategy=settings.quantity_strategy)
    app.state.store = store
    app.state.ledger = ledger
    app.state.lookup_service = ProductLookupService(
        store,
        ProductApiClient(),
        network=create_network_status(settings),
        ledger=ledger,
    )
    logger.info(f"PANTRY SERVICE: quantity strategy={ledger.strategy.value}, network mode={settings.network_mode}")
    logger.info("Pantry Service started successfully")
    yield
    # Shutdown
    logger.info("Shutting down Pantry Service...")
    if store is not None:
        await store.close()
        logger.info("Closed remote store")


app = FastAPI(
    title="Pantry Service",
    description="""
    Barcode inventory tracking.

    **Features:**
    - Barcode to product metadata resolution (Open Food Facts), cached per barcode
    - Negative lookup caching (unknown barcodes are not re-queried)
    - Quantity tracking as a running counter or an append-only adjustment log
    """,
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)


# Global exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them properly"""
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "error_type": type(exc).__name__,
            "message": str(exc)
        }
    )


# Validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors"""
    logger.warning(
        f"Validation error: {exc.errors()}",
        extra={
            "path": request.url.path,
            "method": request.method,
        }
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": jsonable_encoder(exc.errors())}
    )


# Include routers
app.include_router(health.router)
app.include_router(products.router)
app.include_router(inventory.router)
