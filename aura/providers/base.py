"""
Capability set every hardware provider offers to the sync engine.

Failures never raise: a provider returns None (or False for acknowledgements)
when the server is unreachable, times out, or answers with a non-2xx status.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from aura.schemas.hardware import LinkedNode, ServerStatus, TelemetryBatch

class HardwareProvider(ABC):
    supports_discovery: bool = True

    def default_servers(self) -> List[Tuple[str, str]]:
        """(name, address) pairs seeded into an empty store"""
        return []

    @abstractmethod
    async def get_status(self, address: str, timeout: Optional[float] = None) -> Optional[ServerStatus]:
        ...

    @abstractmethod
    async def get_linked_nodes(self, address: str) -> Optional[List[LinkedNode]]:
        ...

    @abstractmethod
    async def set_node_state(self, address: str, node_identifier: str, state: str) -> bool:
        ...

    @abstractmethod
    async def sync_telemetry(self, address: str, since_timestamp: int) -> Optional[TelemetryBatch]:
        ...

    @abstractmethod
    async def acknowledge_telemetry(self, address: str, watermark: int) -> bool:
        ...

    @abstractmethod
    async def create_schedule(self, address: str, schedule: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    async def update_schedule(self, address: str, schedule_id: str, schedule: Dict[str, Any]) -> bool:
        ...

    @abstractmethod
    async def delete_schedule(self, address: str, schedule_id: str) -> bool:
        ...

    @abstractmethod
    async def update_server_config(self, address: str, name: str) -> bool:
        ...

    async def close(self) -> None:
        """Release any pooled connections"""
        return None
