import asyncio
import logging
import random
from typing import Any, Dict, List, Optional, Tuple

from aura.database import get_utc_datetime
from aura.schemas.hardware import LinkedNode, ServerStatus, TelemetryBatch
from .base import HardwareProvider

logger = logging.getLogger(__name__)

MOCK_SERVER_NAME = "Main Server"
MOCK_SERVER_ADDRESS = "192.168.1.100"

# name, type, category, state, temperature, voltage, current
MOCK_FLEET = [
    ("Fan 1", "FAN", "Assembly Line 1", "on", 45.5, 220, 1.5),
    ("Light 1", "LIGHT", "Workshop Lighting", "off", 25.0, 220, 0),
    ("Motor 1", "MOTOR", "Assembly Line 2", "on", 85.2, 220, 5.2),
    ("Drill Press", "MOTOR", "Assembly Line 1", "off", 30.0, 220, 0),
    ("Main Breaker", "SWITCH", "Power Distribution", "on", 40.0, 220, 10.5),
]

# Devices whose temperature follows the forced value
HOT_RUNNING = {"Fan 1", "Motor 1"}

class MockHardwareProvider(HardwareProvider):
    """Simulated server fleet for environments without physical hardware"""

    supports_discovery = False

    def __init__(
        self,
        online_probability: float = 0.9,
        command_failure_rate: float = 0.1,
        latency: float = 0.1,
        rng: Optional[random.Random] = None,
    ):
        self.online_probability = online_probability
        self.command_failure_rate = command_failure_rate
        self.latency = latency
        self.rng = rng or random.Random()
        self._forced_temperature: Optional[float] = None
        self._states: Dict[str, str] = {name: state for name, _, _, state, *_ in MOCK_FLEET}

    def default_servers(self) -> List[Tuple[str, str]]:
        return [(MOCK_SERVER_NAME, MOCK_SERVER_ADDRESS)]

    def set_forced_temperature(self, temperature: Optional[float]) -> None:
        """Override the temperature reported by the hot-running devices; None restores defaults"""
        self._forced_temperature = temperature
        logger.info(f"MOCK: forced temperature set to {temperature}")

    async def _delay(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)

    async def get_status(self, address: str, timeout: Optional[float] = None) -> Optional[ServerStatus]:
        await self._delay()
        if self.rng.random() >= self.online_probability:
            logger.info(f"MOCK: server {address} did not answer")
            return None
        return ServerStatus(
            id=f"mock-{address}",
            name=MOCK_SERVER_NAME,
            firmware_version="mock-1.0.0",
            uptime_seconds=3600,
        )

    async def get_linked_nodes(self, address: str) -> Optional[List[LinkedNode]]:
        await self._delay()
        nodes = []
        for index, (name, kind, category, _, temperature, voltage, current) in enumerate(MOCK_FLEET, start=1):
            if name in HOT_RUNNING and self._forced_temperature is not None:
                temperature = self._forced_temperature
            state = self._states[name]
            nodes.append(LinkedNode(
                node_id=f"mock-node-{index}",
                node_name=name,
                status="online",
                state=state,
                type=kind,
                category=category,
                temperature=temperature,
                voltage=voltage,
                current=current if state == "on" else 0,
            ))
        return nodes

    async def set_node_state(self, address: str, node_identifier: str, state: str) -> bool:
        await self._delay()
        if self.rng.random() < self.command_failure_rate:
            logger.info(f"MOCK: simulated failure switching {node_identifier} to {state}")
            return False
        for index, (name, *_) in enumerate(MOCK_FLEET, start=1):
            if node_identifier in (name, f"mock-node-{index}"):
                self._states[name] = state
                logger.info(f"MOCK: switched {name} to {state}")
                return True
        logger.info(f"MOCK: unknown node {node_identifier}")
        return False

    async def sync_telemetry(self, address: str, since_timestamp: int) -> Optional[TelemetryBatch]:
        await self._delay()
        latest = max(since_timestamp, int(get_utc_datetime().timestamp() * 1000))
        return TelemetryBatch(new_data=[], latest_timestamp=latest)

    async def acknowledge_telemetry(self, address: str, watermark: int) -> bool:
        logger.debug(f"MOCK: telemetry acknowledged up to {watermark} on {address}")
        return True

    async def create_schedule(self, address: str, schedule: Dict[str, Any]) -> bool:
        logger.info(f"MOCK: schedule {schedule.get('scheduleId')} created on {address}")
        return True

    async def update_schedule(self, address: str, schedule_id: str, schedule: Dict[str, Any]) -> bool:
        logger.info(f"MOCK: schedule {schedule_id} updated on {address}")
        return True

    async def delete_schedule(self, address: str, schedule_id: str) -> bool:
        logger.info(f"MOCK: schedule {schedule_id} deleted on {address}")
        return True

    async def update_server_config(self, address: str, name: str) -> bool:
        logger.info(f"MOCK: server {address} renamed to {name}")
        return True
