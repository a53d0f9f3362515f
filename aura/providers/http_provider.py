import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from aura.schemas.hardware import LinkedNode, ServerStatus, TelemetryBatch
from .base import HardwareProvider

logger = logging.getLogger(__name__)

class HttpHardwareProvider(HardwareProvider):
    """Provider for servers exposing the JSON control API over HTTP"""

    def __init__(
        self,
        timeout: float = 2.0,
        api_prefix: str = "/api/v1",
        port: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.api_prefix = "/" + api_prefix.strip("/") if api_prefix.strip("/") else ""
        self.port = port
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json"},
            transport=transport,
        )

    def _url(self, address: str, path: str) -> str:
        host = f"{address}:{self.port}" if self.port else address
        return f"http://{host}{self.api_prefix}{path}"

    async def _request(
        self,
        method: str,
        address: str,
        path: str,
        timeout: Optional[float] = None,
        **kwargs,
    ) -> Optional[httpx.Response]:
        """Send one request; any transport error or non-2xx answer collapses to None"""
        url = self._url(address, path)
        limit = timeout if timeout is not None else self.timeout
        try:
            response = await asyncio.wait_for(
                self.client.request(method, url, timeout=httpx.Timeout(limit), **kwargs),
                timeout=limit,
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as e:
            logger.warning(f"HTTP error {e.response.status_code} for {method} {url}")
            return None
        except (httpx.HTTPError, asyncio.TimeoutError) as e:
            logger.debug(f"Request error for {method} {url}: {e!r}")
            return None

    @staticmethod
    def _json(response: httpx.Response) -> Any:
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    async def get_status(self, address: str, timeout: Optional[float] = None) -> Optional[ServerStatus]:
        response = await self._request("GET", address, "/status", timeout=timeout)
        if response is None:
            return None
        try:
            return ServerStatus.model_validate(self._json(response))
        except ValidationError as e:
            logger.warning(f"Malformed status payload from {address}: {e}")
            return None

    async def get_linked_nodes(self, address: str) -> Optional[List[LinkedNode]]:
        response = await self._request("GET", address, "/nodes")
        if response is None:
            return None
        payload = self._json(response)
        if not isinstance(payload, list):
            logger.warning(f"Malformed node list from {address}: {payload!r}")
            return None
        try:
            return [LinkedNode.model_validate(item) for item in payload]
        except ValidationError as e:
            logger.warning(f"Malformed node entry from {address}: {e}")
            return None

    async def set_node_state(self, address: str, node_identifier: str, state: str) -> bool:
        response = await self._request(
            "PUT", address, f"/nodes/{node_identifier}/state", json={"state": state}
        )
        return response is not None

    async def sync_telemetry(self, address: str, since_timestamp: int) -> Optional[TelemetryBatch]:
        response = await self._request(
            "GET", address, "/sync", params={"lastSyncTimestamp": since_timestamp}
        )
        if response is None:
            return None
        try:
            return TelemetryBatch.model_validate(self._json(response))
        except ValidationError as e:
            logger.warning(f"Malformed telemetry batch from {address}: {e}")
            return None

    async def acknowledge_telemetry(self, address: str, watermark: int) -> bool:
        response = await self._request(
            "DELETE", address, "/sync", json={"clearUntilTimestamp": watermark}
        )
        return response is not None

    async def create_schedule(self, address: str, schedule: Dict[str, Any]) -> bool:
        response = await self._request("POST", address, "/schedules", json=schedule)
        return response is not None

    async def update_schedule(self, address: str, schedule_id: str, schedule: Dict[str, Any]) -> bool:
        response = await self._request("PUT", address, f"/schedules/{schedule_id}", json=schedule)
        return response is not None

    async def delete_schedule(self, address: str, schedule_id: str) -> bool:
        response = await self._request("DELETE", address, f"/schedules/{schedule_id}")
        return response is not None

    async def update_server_config(self, address: str, name: str) -> bool:
        response = await self._request("PUT", address, "/config", json={"serverName": name})
        return response is not None

    async def close(self) -> None:
        """Close HTTP client connections"""
        await self.client.aclose()
