from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from aura.exceptions import NodeNotFoundError, ScheduleNotFoundError
from aura.repository import Repository
from aura.schemas.schedule import ScheduleCreate, ScheduleUpdate, ScheduleResponse
from aura.services.device_sync import DeviceSyncService
from .deps import get_repository, get_sync_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/schedules", tags=["schedules"])

@router.get("/", response_model=List[ScheduleResponse])
async def list_schedules(repository: Repository = Depends(get_repository)):
    """Get all schedules ordered by time of day"""
    return repository.get_schedules()

@router.get("/{schedule_id}", response_model=ScheduleResponse)
async def get_schedule(schedule_id: int, repository: Repository = Depends(get_repository)):
    schedule = repository.get_schedule(schedule_id)
    if not schedule:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return schedule

@router.post("/", response_model=ScheduleResponse)
async def create_schedule(
    schedule: ScheduleCreate,
    sync_service: DeviceSyncService = Depends(get_sync_service),
):
    """Create a schedule and copy it to the node's server"""
    try:
        return await sync_service.create_schedule(**schedule.model_dump())
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail="Node not found")

@router.put("/{schedule_id}", response_model=ScheduleResponse)
async def update_schedule(
    schedule_id: int,
    schedule: ScheduleUpdate,
    sync_service: DeviceSyncService = Depends(get_sync_service),
):
    try:
        return await sync_service.update_schedule(schedule_id, **schedule.model_dump())
    except ScheduleNotFoundError:
        raise HTTPException(status_code=404, detail="Schedule not found")
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail="Node not found")

@router.delete("/{schedule_id}")
async def delete_schedule(
    schedule_id: int,
    sync_service: DeviceSyncService = Depends(get_sync_service),
):
    try:
        await sync_service.delete_schedule(schedule_id)
    except ScheduleNotFoundError:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return {"success": True, "id": schedule_id}
