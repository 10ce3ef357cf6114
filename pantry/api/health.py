from fastapi import APIRouter, Request
from pydantic import BaseModel, Field

from pantry import __version__
from pantry.config import settings

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status", examples=["healthy"])
    service: str = Field(..., description="Service name", examples=["pantry-service"])
    version: str = Field(..., description="Service version", examples=["1.0.0"])
    store: str = Field(..., description="Remote store state", examples=["available"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="""
    Health check endpoint for monitoring and load balancer health checks.

    Returns the service status, name and version. When the remote store failed
    to initialize the service still answers, but reports `degraded`: lookups
    and quantity changes are no-ops until it is restarted.
    """,
    responses={
        200: {
            "description": "Service is up",
            "content": {
                "application/json": {
                    "example": {
                        "status": "healthy",
                        "service": "pantry-service",
                        "version": "1.0.0",
                        "store": "available"
                    }
                }
            }
        }
    }
)
async def health(request: Request):
    """Health check endpoint"""
    store_available = getattr(request.app.state, "store", None) is not None
    return HealthResponse(
        status="healthy" if store_available else "degraded",
        service=settings.app_name,
        version=__version__,
        store="available" if store_available else "unavailable"
    )
