"""
Wire payloads exchanged with a server's control API
"""
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from typing import Optional, List, Any, Dict

class ServerStatus(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("serverId", "id"))
    name: str = Field(validation_alias=AliasChoices("serverName", "name"))
    firmware_version: Optional[str] = Field(default=None, validation_alias=AliasChoices("firmwareVersion", "firmware_version"))
    uptime_seconds: Optional[int] = Field(default=None, validation_alias=AliasChoices("uptimeSeconds", "uptime_seconds"))

class LinkedNode(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(validation_alias=AliasChoices("nodeId", "node_id"))
    node_name: str = Field(validation_alias=AliasChoices("nodeName", "node_name"))
    status: str = "online"  # link status: "online", "offline"
    state: str = "off"  # "on", "off"
    type: str = "GENERIC"
    category: str = "Uncategorized"
    temperature: Optional[float] = None
    voltage: Optional[float] = None
    current: Optional[float] = None

    @property
    def node_status(self) -> str:
        """Status stored for the node: the on/off state, or offline when the link is down"""
        if self.status == "offline":
            return "offline"
        return self.state

class TelemetrySample(BaseModel):
    timestamp: int  # epoch milliseconds
    voltage: float
    current: float

class NodeTelemetry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(validation_alias=AliasChoices("nodeId", "node_id"))
    data_points: List[TelemetrySample] = Field(default_factory=list, validation_alias=AliasChoices("dataPoints", "data_points"))

class TelemetryBatch(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    new_data: List[NodeTelemetry] = Field(default_factory=list, validation_alias=AliasChoices("newData", "new_data"))
    latest_timestamp: int = Field(validation_alias=AliasChoices("latestTimestamp", "latest_timestamp"))

def schedule_payload(schedule: Any) -> Dict[str, Any]:
    """Serialize a local schedule row into the body pushed to a server"""
    return {
        "scheduleId": str(schedule.id),
        "nodeId": str(schedule.device_id),
        "title": schedule.title,
        "action": schedule.action,
        "time": schedule.time,
        "days": list(schedule.days or []),
        "date": schedule.date,
        "enabled": bool(schedule.enabled),
    }
