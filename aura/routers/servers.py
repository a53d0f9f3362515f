from fastapi import APIRouter, Depends, HTTPException
from typing import List
import logging

from aura.exceptions import ServerNotFoundError
from aura.repository import Repository
from aura.schemas.server import ServerResponse, ServerRename, DiscoveryResponse
from aura.services.device_sync import DeviceSyncService
from .deps import get_repository, get_sync_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/servers", tags=["servers"])

@router.get("/", response_model=List[ServerResponse])
async def list_servers(repository: Repository = Depends(get_repository)):
    """Get all known servers"""
    return repository.get_servers()

@router.post("/discover", response_model=DiscoveryResponse)
async def discover_servers(
    repository: Repository = Depends(get_repository),
    sync_service: DeviceSyncService = Depends(get_sync_service),
):
    """Scan the local subnet for servers, then run a sync pass"""
    success = await sync_service.discover_devices()
    return DiscoveryResponse(success=success, servers=len(repository.get_servers()))

@router.get("/{server_id}", response_model=ServerResponse)
async def get_server(server_id: int, repository: Repository = Depends(get_repository)):
    """Get server by ID"""
    server = repository.get_server(server_id)
    if not server:
        raise HTTPException(status_code=404, detail="Server not found")
    return server

@router.put("/{server_id}", response_model=ServerResponse)
async def rename_server(
    server_id: int,
    payload: ServerRename,
    sync_service: DeviceSyncService = Depends(get_sync_service),
):
    """Rename a server locally and push the new name to it"""
    name = payload.name.strip()
    if not name:
        raise HTTPException(status_code=422, detail="Server name cannot be empty")
    try:
        return await sync_service.rename_server(server_id, name)
    except ServerNotFoundError:
        raise HTTPException(status_code=404, detail="Server not found")
