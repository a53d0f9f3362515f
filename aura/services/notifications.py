"""
Notification dispatch for alerts and device status changes.

Delivery is best-effort: nothing raised by a backend reaches the sync pass.
"""
import logging
from typing import Any, Dict, Optional

import httpx

from aura.database import Settings

logger = logging.getLogger(__name__)

PRIORITY_MAX = "max"
PRIORITY_DEFAULT = "default"

ALERT_TITLES = {
    "critical": "Critical Alert",
    "warning": "Warning",
    "info": "Info",
}

class LogNotificationBackend:
    """Writes notifications to the application log"""

    async def deliver(self, title: str, body: str, data: Dict[str, Any], priority: str) -> None:
        logger.info(f"NOTIFY [{priority}] {title}: {body} {data}")

class GotifyNotificationBackend:
    """Pushes notifications to a Gotify server"""

    PRIORITIES = {PRIORITY_MAX: 8, PRIORITY_DEFAULT: 5}

    def __init__(self, url: str, token: str, timeout: float = 5.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = f"{url.rstrip('/')}/message"
        self.token = token
        self.timeout = timeout
        self.transport = transport

    async def deliver(self, title: str, body: str, data: Dict[str, Any], priority: str) -> None:
        payload = {
            "title": title,
            "message": body,
            "priority": self.PRIORITIES.get(priority, 5),
            "extras": {"aura::data": data},
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(self.url, params={"token": self.token}, json=payload)
            response.raise_for_status()

class NotificationService:
    def __init__(self, backend=None, enabled: bool = True):
        self.backend = backend or LogNotificationBackend()
        self.enabled = enabled

    @classmethod
    def from_settings(cls, settings: Settings) -> "NotificationService":
        if settings.gotify_url and settings.gotify_token:
            backend = GotifyNotificationBackend(settings.gotify_url, settings.gotify_token)
        else:
            backend = LogNotificationBackend()
        return cls(backend=backend, enabled=settings.notifications_enabled)

    async def send(
        self,
        title: str,
        body: str,
        data: Optional[Dict[str, Any]] = None,
        priority: str = PRIORITY_DEFAULT,
    ) -> bool:
        """Deliver one notification; returns False instead of raising on any failure"""
        if not self.enabled:
            logger.debug(f"Notifications disabled, skipping: {title}")
            return False
        try:
            await self.backend.deliver(title, body, data or {}, priority)
            return True
        except Exception as e:
            logger.error(f"Error sending notification '{title}': {str(e)}")
            return False

    async def send_alert(self, level: str, message: str, data: Optional[Dict[str, Any]] = None) -> bool:
        priority = PRIORITY_MAX if level == "critical" else PRIORITY_DEFAULT
        return await self.send(ALERT_TITLES.get(level, "Alert"), message, data, priority)

    async def send_server_offline(self, message: str, data: Optional[Dict[str, Any]] = None) -> bool:
        return await self.send("Server Offline", message, data, PRIORITY_MAX)

    async def send_device_status(self, device_name: str, status: str, data: Optional[Dict[str, Any]] = None) -> bool:
        return await self.send(
            "Device Status Changed",
            f"{device_name} is now {status.upper()}",
            {"type": "device_status", **(data or {})},
        )
