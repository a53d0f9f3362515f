from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List

from aura.exceptions import AlertNotFoundError
from aura.repository import Repository
from aura.schemas.alert import AlertResponse
from .deps import get_repository

router = APIRouter(prefix="/api/v1/alerts", tags=["alerts"])

@router.get("/", response_model=List[AlertResponse])
async def list_alerts(
    unacknowledged_only: bool = False,
    limit: int = Query(100, ge=1, le=1000),
    repository: Repository = Depends(get_repository),
):
    """Get alerts, newest first"""
    return repository.get_alerts(unacknowledged_only=unacknowledged_only, limit=limit)

@router.post("/{alert_id}/acknowledge", response_model=AlertResponse)
async def acknowledge_alert(alert_id: int, repository: Repository = Depends(get_repository)):
    """Mark an alert as acknowledged"""
    try:
        return repository.acknowledge_alert(alert_id)
    except AlertNotFoundError:
        raise HTTPException(status_code=404, detail="Alert not found")
