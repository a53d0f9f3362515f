# aura/main.py
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from aura.database import Settings, settings as default_settings, engine as default_engine
from aura.exceptions import AuraException, CommandError, RecordNotFoundError
from aura.init_db import init_database
from aura.logging_config import setup_logging
from aura.providers import get_hardware_provider
from aura.repository import Repository
from aura.services.device_sync import DeviceSyncService
from aura.services.notifications import NotificationService
from aura.services.scheduler import SchedulerState, SyncScheduler

# Routers
from aura.routers import (
    health_router,
    servers_router,
    nodes_router,
    alerts_router,
    schedules_router,
    sync_router,
)

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings = None,
    engine=None,
    provider=None,
    notifications=None,
    start_scheduler: bool = True,
) -> FastAPI:
    settings = settings or default_settings
    engine = engine or default_engine

    app = FastAPI(
        title="Aura Factory Dashboard API",
        description="API for monitoring and controlling factory-floor IoT devices",
        version="1.0.0",
        debug=settings.debug,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Services are built once and shared through app.state
    repository = Repository(engine)
    provider = provider or get_hardware_provider(settings)
    notifications = notifications or NotificationService.from_settings(settings)
    sync_service = DeviceSyncService(repository, provider, notifications, settings)
    sync_scheduler = SyncScheduler(sync_service, interval_seconds=settings.sync_interval_seconds)

    app.state.settings = settings
    app.state.repository = repository
    app.state.provider = provider
    app.state.sync_service = sync_service
    app.state.sync_scheduler = sync_scheduler

    @app.exception_handler(AuraException)
    async def aura_exception_handler(request: Request, exc: AuraException):
        if isinstance(exc, RecordNotFoundError):
            status_code = 404
        elif isinstance(exc, CommandError):
            status_code = 502
        else:
            status_code = 400
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    # Mount router
    app.include_router(health_router)            # /healthz, /api/v1/health
    app.include_router(servers_router)           # /api/v1/servers/...
    app.include_router(nodes_router)             # /api/v1/nodes/...
    app.include_router(alerts_router)            # /api/v1/alerts/...
    app.include_router(schedules_router)         # /api/v1/schedules/...
    app.include_router(sync_router)              # /api/v1/sync/...

    # Startup: tables + first pass + scheduler
    @app.on_event("startup")
    async def _startup():
        setup_logging(settings.log_level)
        init_database(engine)
        if start_scheduler:
            sync_scheduler.start(immediate=True)

    @app.on_event("shutdown")
    async def _shutdown():
        if sync_scheduler.state != SchedulerState.STOPPED:
            sync_scheduler.stop()
        await provider.close()

    return app


app = create_app()
