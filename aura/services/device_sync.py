"""
Device synchronization engine.

One pass polls every known server, reconciles its status and nodes into the
local store, evaluates node readings against alert thresholds and, on a
schedule, samples telemetry and sweeps old data points.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from aura.database import Settings, settings as default_settings
from aura.exceptions import CommandError, NodeNotFoundError, ServerNotFoundError
from aura.models import Node, Schedule, Server
from aura.schemas.hardware import schedule_payload
from .alerts import AlertDispatcher, evaluate_thresholds
from .discovery import SubnetScanner

logger = logging.getLogger(__name__)

NODE_STATES = ("on", "off")

class FailureCounter:
    """Consecutive status-fetch failures per server address.

    Only touched from the event loop, and no method awaits, so each update is atomic.
    """

    def __init__(self):
        self._counts: Dict[str, int] = {}

    def increment(self, address: str) -> int:
        self._counts[address] = self._counts.get(address, 0) + 1
        return self._counts[address]

    def reset(self, address: str) -> None:
        self._counts.pop(address, None)

    def get(self, address: str) -> int:
        return self._counts.get(address, 0)

    def clear(self) -> None:
        self._counts.clear()

    def snapshot(self) -> Dict[str, int]:
        return dict(self._counts)

class DeviceSyncService:
    def __init__(self, repository, provider, notifications, settings: Optional[Settings] = None, scanner=None):
        self.repository = repository
        self.provider = provider
        self.notifications = notifications
        self.settings = settings or default_settings
        self.alerts = AlertDispatcher(repository, notifications)
        self.scanner = scanner or SubnetScanner(repository, provider, self.settings)

        self.failures = FailureCounter()
        self.pass_count = 0
        self._watermarks: Dict[str, int] = {}
        self._pass_lock = asyncio.Lock()

    def reset(self) -> None:
        """Forget failure counters, telemetry watermarks and the pass counter"""
        self.failures.clear()
        self._watermarks.clear()
        self.pass_count = 0

    def failure_counts(self) -> Dict[str, int]:
        return self.failures.snapshot()

    async def sync_all(self) -> None:
        """Run one full sync pass; never raises. A pass requested while another is
        in flight waits for it to finish."""
        if self._pass_lock.locked():
            logger.info("Sync pass already running, waiting for it to finish")
        async with self._pass_lock:
            await self._run_pass()

    async def _run_pass(self) -> None:
        logger.info("Starting device sync...")
        try:
            servers = self.repository.get_servers()
            if not servers:
                servers = await self._bootstrap_servers()

            sample = self.pass_count % max(1, self.settings.sample_every_n_passes) == 0
            if servers:
                await asyncio.gather(*(self._sync_server_safely(server, sample) for server in servers))

            if self.pass_count % max(1, self.settings.retention_every_n_passes) == 0:
                self._sweep_data_points()
            logger.info(f"Device sync completed ({len(servers)} server(s))")
        except Exception:
            logger.exception("Device sync pass failed")
        finally:
            self.pass_count += 1

    async def _bootstrap_servers(self) -> List[Server]:
        seeds = self.provider.default_servers()
        if seeds:
            for name, address in seeds:
                logger.info(f"Seeding server {name} ({address})")
                self.repository.upsert_server(name, address, "online")
        elif self.settings.auto_discover and self.provider.supports_discovery:
            logger.info("No servers known, running discovery first")
            await self.scanner.scan()
        else:
            logger.info("No servers known; run discovery to register servers")
        return self.repository.get_servers()

    async def _sync_server_safely(self, server: Server, sample: bool) -> None:
        try:
            await self.sync_server(server, sample=sample)
        except Exception:
            logger.exception(f"Failed to sync server {server.name} ({server.address})")

    async def _fetch_status(self, server: Server):
        try:
            return await self.provider.get_status(server.address)
        except Exception as e:
            logger.warning(f"Status fetch for {server.address} raised: {e!r}")
            return None

    async def sync_server(self, server: Server, sample: bool = False) -> str:
        """Reconcile one server; returns the status it ends the pass with"""
        previous_status = server.status
        status_info = await self._fetch_status(server)

        if status_info is not None:
            self.failures.reset(server.address)
            server = self.repository.upsert_server(
                status_info.name,
                server.address,
                "online",
                firmware_version=status_info.firmware_version,
                uptime_seconds=status_info.uptime_seconds,
                seen=True,
            )
            status = "online"
        else:
            failures = self.failures.increment(server.address)
            logger.info(f"Server {server.name} sync failed. Count: {failures}")
            if failures >= self.settings.offline_failure_threshold:
                status = "offline"
                if previous_status != "offline":
                    self.repository.update_server_status(server.id, "offline")
            else:
                status = previous_status

        if status == "offline" and previous_status == "online":
            await self.alerts.raise_server_offline(server)

        # a held status carries no fresh data, so nodes are left as they are
        if status_info is not None:
            await self._reconcile_nodes(server, sample)
        return status

    async def _reconcile_nodes(self, server: Server, sample: bool) -> None:
        linked = await self.provider.get_linked_nodes(server.address)
        if linked is None:
            logger.warning(f"Could not list nodes of {server.name} ({server.address})")
            return

        known = {node.name: node for node in self.repository.get_nodes_by_server(server.id)}
        synced: List[Node] = []
        for item in linked:
            new_status = item.node_status
            existing = known.get(item.node_name)
            if existing is not None and existing.status != new_status:
                await self.notifications.send_device_status(
                    item.node_name, new_status, {"nodeId": existing.id}
                )

            node = self.repository.upsert_node(
                server.id,
                item.node_name,
                type=item.type,
                category=item.category,
                status=new_status,
                state=item.state,
                temperature=item.temperature,
                voltage=item.voltage,
                current=item.current,
                hardware_id=item.node_id,
            )
            for candidate in evaluate_thresholds(node):
                await self.alerts.raise_alert(candidate)
            synced.append(node)

        if sample:
            self._sample_readings(synced)
            await self._sync_telemetry(server, synced)

    def _sample_readings(self, nodes: List[Node]) -> None:
        for node in nodes:
            if node.status == "offline" or node.voltage is None or node.current is None:
                continue
            self.repository.log_data_point(node.id, node.voltage, node.current)

    async def _sync_telemetry(self, server: Server, nodes: List[Node]) -> None:
        since = self._watermarks.get(server.address, 0)
        batch = await self.provider.sync_telemetry(server.address, since)
        if batch is None:
            logger.debug(f"No telemetry from {server.address}")
            return

        by_hardware_id = {node.hardware_id: node for node in nodes if node.hardware_id}
        stored = 0
        for entry in batch.new_data:
            node = by_hardware_id.get(entry.node_id)
            if node is None:
                logger.debug(f"Telemetry for unknown node {entry.node_id} on {server.address}")
                continue
            for point in entry.data_points:
                self.repository.log_data_point(
                    node.id,
                    point.voltage,
                    point.current,
                    timestamp=datetime.fromtimestamp(point.timestamp / 1000, tz=timezone.utc),
                )
                stored += 1

        self._watermarks[server.address] = batch.latest_timestamp
        if batch.new_data:
            logger.info(f"Stored {stored} telemetry points from {server.name}")
            if not await self.provider.acknowledge_telemetry(server.address, batch.latest_timestamp):
                logger.warning(f"Telemetry acknowledgement to {server.address} failed")

    def _sweep_data_points(self) -> None:
        try:
            self.repository.delete_old_data_points(
                days=self.settings.retention_days,
                max_count=self.settings.retention_max_points,
            )
        except Exception:
            logger.exception("Data point retention sweep failed")

    # Commands

    async def toggle_node(self, node_id: int, state: str) -> Node:
        """Switch a node on or off; raises CommandError when the server does not acknowledge"""
        if state not in NODE_STATES:
            raise ValueError(f"Invalid node state: {state!r}")

        node = self.repository.get_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        server = self.repository.get_server(node.server_id)
        if server is None:
            raise ServerNotFoundError(node.server_id)

        identifier = node.hardware_id or node.name
        try:
            ok = await self.provider.set_node_state(server.address, identifier, state)
        except Exception as e:
            logger.error(f"Error switching {node.name} to {state}: {str(e)}")
            raise CommandError(node.name, server.address, state) from e
        if not ok:
            logger.error(f"Server {server.address} rejected switching {node.name} to {state}")
            raise CommandError(node.name, server.address, state)

        logger.info(f"Node {node.name} switched {state}")
        return self.repository.update_node_status(node.id, state, state)

    async def rename_server(self, server_id: int, name: str) -> Server:
        server = self.repository.rename_server(server_id, name)
        try:
            pushed = await self.provider.update_server_config(server.address, name)
        except Exception as e:
            logger.warning(f"Rename push to {server.address} raised: {e!r}")
            pushed = False
        if not pushed:
            logger.warning(f"Server {server.address} renamed locally only")
        return server

    async def discover_devices(self) -> bool:
        """Scan for servers, then run a pass; both hold the pass lock"""
        logger.info("Scanning for devices...")
        async with self._pass_lock:
            if self.provider.supports_discovery:
                try:
                    await self.scanner.scan()
                except Exception:
                    logger.exception("Device discovery failed")
                    return False
            await self._run_pass()
        return True

    # Schedules

    async def create_schedule(self, **fields) -> Schedule:
        if self.repository.get_node(fields.get("device_id")) is None:
            raise NodeNotFoundError(fields.get("device_id"))
        schedule = self.repository.create_schedule(**fields)
        await self._push_schedule("create", schedule)
        return schedule

    async def update_schedule(self, schedule_id: int, **fields) -> Schedule:
        if "device_id" in fields and self.repository.get_node(fields["device_id"]) is None:
            raise NodeNotFoundError(fields["device_id"])
        schedule = self.repository.update_schedule(schedule_id, **fields)
        await self._push_schedule("update", schedule)
        return schedule

    async def delete_schedule(self, schedule_id: int) -> Schedule:
        schedule = self.repository.delete_schedule(schedule_id)
        await self._push_schedule("delete", schedule)
        return schedule

    async def _push_schedule(self, operation: str, schedule: Schedule) -> bool:
        """Mirror a local schedule change onto the node's server; failures only log"""
        node = self.repository.get_node(schedule.device_id)
        server = self.repository.get_server(node.server_id) if node else None
        if server is None:
            logger.warning(f"Schedule {schedule.id}: no server to push {operation} to")
            return False

        payload = schedule_payload(schedule)
        try:
            if operation == "create":
                ok = await self.provider.create_schedule(server.address, payload)
            elif operation == "update":
                ok = await self.provider.update_schedule(server.address, str(schedule.id), payload)
            else:
                ok = await self.provider.delete_schedule(server.address, str(schedule.id))
        except Exception as e:
            logger.warning(f"Schedule {operation} push to {server.address} raised: {e!r}")
            ok = False

        if not ok:
            logger.warning(f"Failed to {operation} schedule {schedule.id} on {server.address}")
        return ok
