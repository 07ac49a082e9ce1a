from __future__ import annotations

from fastapi import APIRouter, Depends

from websense.api.deps import get_health_service
from websense.models.schemas import HealthResponse
from websense.services.health import HealthService

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def get_health(health: HealthService = Depends(get_health_service)) -> HealthResponse:
    """Probe the search provider and the LM Studio server."""
    return await health.check()
