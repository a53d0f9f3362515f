"""
Threshold evaluation and alert deduplication
"""
import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from aura.models import Alert

logger = logging.getLogger(__name__)

TEMP_CRITICAL = 95
TEMP_WARNING = 80
VOLTAGE_LOW = 180
VOLTAGE_HIGH = 250
CURRENT_LIMIT = 15  # rated limit, A

@dataclass(frozen=True)
class AlertCandidate:
    device_id: int
    level: str
    message: str

def format_reading(value: float) -> str:
    """Render 96.0 as "96" and 85.2 as "85.2" """
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return str(value)

def evaluate_thresholds(node: Any) -> List[AlertCandidate]:
    """Turn a node's latest readings into alert candidates; unknown readings are skipped"""
    candidates: List[AlertCandidate] = []
    name = node.name

    def add(level: str, message: str) -> None:
        candidates.append(AlertCandidate(node.id, level, message))

    temperature = node.temperature
    if temperature is not None:
        if temperature > TEMP_CRITICAL:
            add("critical", f"{name} is critically overheating ({format_reading(temperature)}°C)")
        elif temperature > TEMP_WARNING:
            add("warning", f"{name} is running hot ({format_reading(temperature)}°C)")

    voltage = node.voltage
    if voltage is not None:
        if voltage < VOLTAGE_LOW:
            add("warning", f"{name} voltage low ({format_reading(voltage)}V)")
        if voltage > VOLTAGE_HIGH:
            add("warning", f"{name} voltage high ({format_reading(voltage)}V)")

    current = node.current
    if current is not None and current > CURRENT_LIMIT:
        add("critical", f"{name} overcurrent detected ({format_reading(current)}A)")

    return candidates

def dedup_key(device_id: Optional[int], message: str) -> Tuple[Optional[int], str]:
    """Two alerts with the same key are the same condition"""
    return (device_id, message)

class AlertDispatcher:
    """Persists new alerts and notifies, suppressing repeats of unacknowledged ones"""

    def __init__(self, repository, notifications):
        self.repository = repository
        self.notifications = notifications

    def is_duplicate(self, candidate: AlertCandidate, open_alerts: List[Alert]) -> bool:
        key = dedup_key(candidate.device_id, candidate.message)
        return any(dedup_key(a.device_id, a.message) == key for a in open_alerts)

    async def raise_alert(self, candidate: AlertCandidate) -> Optional[Alert]:
        """Create the alert unless an unacknowledged one already covers it"""
        open_alerts = self.repository.get_unacknowledged_alerts()
        if self.is_duplicate(candidate, open_alerts):
            logger.debug(f"Suppressed duplicate alert for device {candidate.device_id}: {candidate.message}")
            return None
        return await self._create_and_notify(candidate)

    async def _create_and_notify(self, candidate: AlertCandidate) -> Alert:
        alert = self.repository.create_alert(candidate.device_id, candidate.level, candidate.message)
        logger.info(f"Alert #{alert.id} [{alert.level}] {alert.message}")
        await self.notifications.send_alert(
            candidate.level,
            candidate.message,
            {"nodeId": candidate.device_id, "alertId": alert.id},
        )
        return alert

    async def raise_server_offline(self, server: Any) -> Alert:
        """Critical alert for a server that just went from online to offline"""
        message = f"Server {server.name} ({server.address}) is unreachable"
        alert = self.repository.create_alert(server.id, "critical", message, source="server")
        logger.warning(f"Alert #{alert.id} [critical] {message}")
        await self.notifications.send_server_offline(message, {"nodeId": server.id, "alertId": alert.id})
        return alert
