from fastapi import APIRouter, Depends

from aura.schemas.sync import SyncStatusResponse
from aura.services.device_sync import DeviceSyncService
from aura.services.scheduler import SyncScheduler
from .deps import get_sync_scheduler, get_sync_service

router = APIRouter(prefix="/api/v1/sync", tags=["sync"])

def _status(sync_service: DeviceSyncService, scheduler: SyncScheduler) -> SyncStatusResponse:
    return SyncStatusResponse(
        scheduler_state=scheduler.state.value,
        interval_seconds=scheduler.interval_seconds,
        pass_count=sync_service.pass_count,
        failure_counts=sync_service.failure_counts(),
    )

@router.post("/", response_model=SyncStatusResponse)
async def run_sync(
    sync_service: DeviceSyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Run one sync pass now (pull-to-refresh)"""
    await sync_service.sync_all()
    return _status(sync_service, scheduler)

@router.get("/status", response_model=SyncStatusResponse)
async def sync_status(
    sync_service: DeviceSyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    return _status(sync_service, scheduler)

@router.post("/pause", response_model=SyncStatusResponse)
async def pause_sync(
    sync_service: DeviceSyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    """Stop periodic passes, e.g. while the client is in the background"""
    scheduler.pause()
    return _status(sync_service, scheduler)

@router.post("/resume", response_model=SyncStatusResponse)
async def resume_sync(
    sync_service: DeviceSyncService = Depends(get_sync_service),
    scheduler: SyncScheduler = Depends(get_sync_scheduler),
):
    scheduler.resume()
    return _status(sync_service, scheduler)
