from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])

@router.get("/healthz")
async def liveness():
    return {"status": "ok", "service": "aura-dashboard-api"}

@router.get("/api/v1/health")
async def api_health(request: Request):
    """Liveness plus the hardware mode and sync scheduler state"""
    state = request.app.state
    return {
        "status": "ok",
        "api_version": "v1",
        "mock_hardware": state.settings.use_mock_hardware,
        "sync_scheduler": state.sync_scheduler.state.value,
    }
