from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
import logging

from aura.exceptions import CommandError, RecordNotFoundError
from aura.repository import Repository
from aura.schemas.node import NodeResponse, NodeStateUpdate, DataPointResponse
from aura.services.device_sync import DeviceSyncService
from .deps import get_repository, get_sync_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/nodes", tags=["nodes"])

@router.get("/", response_model=List[NodeResponse])
async def list_nodes(
    category: Optional[str] = None,
    server_id: Optional[int] = None,
    repository: Repository = Depends(get_repository),
):
    """Get all nodes, optionally filtered by category or server"""
    if server_id is not None:
        nodes = repository.get_nodes_by_server(server_id)
    else:
        nodes = repository.get_all_nodes()
    if category:
        nodes = [node for node in nodes if node.category == category]
    return nodes

@router.get("/{node_id}", response_model=NodeResponse)
async def get_node(node_id: int, repository: Repository = Depends(get_repository)):
    """Get node by ID"""
    node = repository.get_node(node_id)
    if not node:
        raise HTTPException(status_code=404, detail="Node not found")
    return node

@router.post("/{node_id}/state", response_model=NodeResponse)
async def set_node_state(
    node_id: int,
    payload: NodeStateUpdate,
    sync_service: DeviceSyncService = Depends(get_sync_service),
):
    """Switch a node on or off. A 502 means the server did not apply the change."""
    try:
        return await sync_service.toggle_node(node_id, payload.state)
    except RecordNotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except CommandError as e:
        raise HTTPException(status_code=502, detail=e.to_dict())

@router.get("/{node_id}/data-points", response_model=List[DataPointResponse])
async def get_node_data_points(
    node_id: int,
    limit: int = Query(500, ge=1, le=5000),
    repository: Repository = Depends(get_repository),
):
    """Recorded voltage/current samples for a node, newest first"""
    if not repository.get_node(node_id):
        raise HTTPException(status_code=404, detail="Node not found")
    return repository.get_data_points(node_id, limit=limit)
