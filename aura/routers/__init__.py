from .health import router as health_router
from .servers import router as servers_router
from .nodes import router as nodes_router
from .alerts import router as alerts_router
from .schedules import router as schedules_router
from .sync import router as sync_router

__all__ = [
    "health_router",
    "servers_router",
    "nodes_router",
    "alerts_router",
    "schedules_router",
    "sync_router"
]
