"""
Request-scoped access to the services built at startup
"""
from fastapi import Request

from aura.repository import Repository
from aura.services.device_sync import DeviceSyncService
from aura.services.scheduler import SyncScheduler

def get_repository(request: Request) -> Repository:
    return request.app.state.repository

def get_sync_service(request: Request) -> DeviceSyncService:
    return request.app.state.sync_service

def get_sync_scheduler(request: Request) -> SyncScheduler:
    return request.app.state.sync_scheduler
