from __future__ import annotations

from fastapi import APIRouter, Request

from examforge.models.responses import HealthResponse

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check with password guard metrics."""
    metrics = getattr(request.app.state, "metrics", None)
    if metrics:
        stats = await metrics.get_stats()
        uptime = stats.pop("uptime_seconds", 0.0)
    else:
        stats = {}
        uptime = 0.0

    return HealthResponse(
        status="ok",
        storage=request.app.state.settings.storage_type.value,
        uptime_seconds=uptime,
        metrics=stats,
    )
