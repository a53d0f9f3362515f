from .server import ServerResponse, ServerRename, DiscoveryResponse
from .node import NodeResponse, NodeStateUpdate, DataPointResponse
from .alert import AlertResponse
from .schedule import ScheduleCreate, ScheduleUpdate, ScheduleResponse
from .hardware import ServerStatus, LinkedNode, TelemetryBatch, NodeTelemetry, TelemetrySample
from .sync import SyncStatusResponse

__all__ = [
    "ServerResponse",
    "ServerRename",
    "DiscoveryResponse",
    "NodeResponse",
    "NodeStateUpdate",
    "DataPointResponse",
    "AlertResponse",
    "ScheduleCreate",
    "ScheduleUpdate",
    "ScheduleResponse",
    "ServerStatus",
    "LinkedNode",
    "TelemetryBatch",
    "NodeTelemetry",
    "TelemetrySample",
    "SyncStatusResponse"
]
