"""Health check endpoints"""

from typing import Dict

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel
import structlog


logger = structlog.get_logger(__name__)
router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model"""
    status: str
    version: str
    services: Dict[str, str]


@router.get("/", response_model=HealthResponse)
async def health_check(request: Request):
    """Basic health check"""
    coordinator = request.app.state.coordinator
    return HealthResponse(
        status="healthy",
        version="1.0.0",
        services={stage.name: type(stage).__name__ for stage in coordinator.stages},
    )


@router.get("/ready")
async def readiness_check(request: Request):
    """Ready once every stage has initialized"""
    health = request.app.state.coordinator.get_system_health()
    ready = health["status"] == "operational"
    if not ready:
        logger.warning("Readiness check failed", status=health["status"])
    
    return JSONResponse(
        status_code=200 if ready else 503,
        content={
            "status": "healthy" if ready else "unhealthy",
            "connected_clients": health["connected_clients"],
            "stages": health["stages"],
        },
    )


@router.get("/live")
async def liveness_check():
    """Liveness check"""
    return {"status": "alive"}
