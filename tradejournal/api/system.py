"""System API: health check and scheduler status."""

from fastapi import APIRouter, Request

from tradejournal.engine.scheduler import get_scheduler_status

router = APIRouter(prefix="/api/system", tags=["system"])


@router.get("/health")
def health_check(request: Request):
    gateway = request.app.state.gateway
    return {
        "status": "ok",
        "subscribers": gateway.hub.subscriber_count,
    }


@router.get("/scheduler")
def scheduler_status(request: Request):
    """Current scheduler state with job details."""
    return get_scheduler_status(request.app.state.scheduler)
