"""
Tests for the device sync engine

Coverage:
- Idempotent node upsert
- Offline hysteresis and transition-only alerting
- Threshold alerts from a sync pass
- Per-server failure isolation
- Sampling, telemetry watermark and retention cadence
- Serialized sync passes
- Node commands, server rename and schedule pushes
- Mock fleet scenario
"""
import asyncio
import random
from datetime import timedelta

import pytest

from aura.database import get_utc_datetime
from aura.exceptions import CommandError, NodeNotFoundError
from aura.providers.mock_provider import MockHardwareProvider
from aura.schemas.hardware import NodeTelemetry, TelemetryBatch, TelemetrySample
from aura.services.device_sync import DeviceSyncService
from tests.conftest import FakeProvider, make_node, make_status

ADDRESS = "10.0.0.5"


@pytest.fixture
def online_server(repository):
    return repository.upsert_server("Gateway", ADDRESS, "online")


class TestNodeUpsert:
    def test_upsert_is_idempotent(self, repository, online_server):
        for _ in range(2):
            repository.upsert_node(
                online_server.id, "Fan 1", type="FAN", category="Line 1",
                status="on", state="on", temperature=45.5, voltage=220, current=1.5,
            )

        nodes = repository.get_nodes_by_server(online_server.id)
        assert len(nodes) == 1
        assert (nodes[0].temperature, nodes[0].voltage, nodes[0].current) == (45.5, 220, 1.5)


class TestHysteresis:
    @pytest.mark.asyncio
    async def test_three_failures_mark_offline_and_success_recovers(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = None

        for _ in range(2):
            status = await sync_service.sync_server(repository.get_server(online_server.id))
            assert status == "online"
            assert repository.get_server(online_server.id).status == "online"

        status = await sync_service.sync_server(repository.get_server(online_server.id))
        assert status == "offline"
        assert repository.get_server(online_server.id).status == "offline"
        assert sync_service.failures.get(ADDRESS) == 3

        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = []
        status = await sync_service.sync_server(repository.get_server(online_server.id))
        assert status == "online"
        assert repository.get_server(online_server.id).status == "online"
        assert sync_service.failures.get(ADDRESS) == 0

    @pytest.mark.asyncio
    async def test_nodes_untouched_while_holding(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = None
        await sync_service.sync_server(repository.get_server(online_server.id))
        assert provider.called("get_linked_nodes") == []

    @pytest.mark.asyncio
    async def test_raising_status_fetch_counts_as_failure(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = ConnectionError("boom")
        for _ in range(3):
            await sync_service.sync_server(repository.get_server(online_server.id))
        assert repository.get_server(online_server.id).status == "offline"


class TestOfflineAlerts:
    @pytest.mark.asyncio
    async def test_offline_alert_fires_once_per_transition(self, repository, provider, recorder, sync_service, online_server):
        provider.statuses[ADDRESS] = None
        for _ in range(6):
            await sync_service.sync_all()

        alerts = repository.get_alerts()
        assert len(alerts) == 1
        assert alerts[0].level == "critical"
        assert alerts[0].device_id == online_server.id
        assert alerts[0].source == "server"
        assert alerts[0].message == f"Server Gateway ({ADDRESS}) is unreachable"
        assert recorder.titles().count("Server Offline") == 1

        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = []
        await sync_service.sync_all()
        provider.statuses[ADDRESS] = None
        for _ in range(3):
            await sync_service.sync_all()

        assert len(repository.get_alerts()) == 2
        assert recorder.titles().count("Server Offline") == 2

    @pytest.mark.asyncio
    async def test_server_already_offline_does_not_alert(self, repository, provider, sync_service):
        repository.upsert_server("Cold", ADDRESS, "offline")
        provider.statuses[ADDRESS] = None
        for _ in range(4):
            await sync_service.sync_all()
        assert repository.get_alerts() == []


class TestNodeReconciliation:
    @pytest.mark.asyncio
    async def test_nodes_are_stored_and_evaluated(self, repository, provider, recorder, sync_service, online_server):
        provider.statuses[ADDRESS] = make_status(name="Line Gateway")
        provider.nodes[ADDRESS] = [
            make_node("Fan 1", temperature=96, voltage=220, current=1.5),
            make_node("Light 1", state="off", temperature=25, voltage=220, current=0),
        ]

        await sync_service.sync_all()

        server = repository.get_server(online_server.id)
        assert server.name == "Line Gateway"
        assert server.firmware_version == "2.1.0"
        assert server.last_seen is not None

        nodes = {n.name: n for n in repository.get_nodes_by_server(server.id)}
        assert nodes["Fan 1"].status == "on"
        assert nodes["Fan 1"].hardware_id == "fan-1"
        assert nodes["Light 1"].status == "off"

        alerts = repository.get_unacknowledged_alerts()
        assert [(a.device_id, a.level) for a in alerts] == [(nodes["Fan 1"].id, "critical")]
        assert alerts[0].source == "node"
        assert "critically overheating" in alerts[0].message
        # new nodes do not produce status-change notices
        assert "Device Status Changed" not in recorder.titles()

    @pytest.mark.asyncio
    async def test_status_change_notifies(self, repository, provider, recorder, sync_service, online_server):
        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = [make_node("Fan 1", state="off")]
        await sync_service.sync_all()

        provider.nodes[ADDRESS] = [make_node("Fan 1", state="on")]
        await sync_service.sync_all()

        notices = [n for n in recorder.sent if n["title"] == "Device Status Changed"]
        assert len(notices) == 1
        assert notices[0]["body"] == "Fan 1 is now ON"

    @pytest.mark.asyncio
    async def test_offline_link_marks_node_offline(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = [make_node("Fan 1", state="on", status="offline")]
        await sync_service.sync_all()
        assert repository.get_node_by_name(online_server.id, "Fan 1").status == "offline"

    @pytest.mark.asyncio
    async def test_failed_node_listing_leaves_nodes(self, repository, provider, sync_service, online_server):
        repository.upsert_node(online_server.id, "Fan 1", status="on", state="on")
        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = None
        await sync_service.sync_all()
        assert repository.get_node_by_name(online_server.id, "Fan 1").status == "on"


class TestIsolation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("failure", ["status", "nodes"])
    async def test_one_server_failing_does_not_block_another(self, repository, provider, sync_service, failure):
        broken = repository.upsert_server("A", "10.0.0.1", "online")
        healthy = repository.upsert_server("B", "10.0.0.2", "online")

        if failure == "status":
            provider.statuses["10.0.0.1"] = RuntimeError("status exploded")
        else:
            provider.statuses["10.0.0.1"] = make_status(name="A")
            provider.nodes["10.0.0.1"] = RuntimeError("nodes exploded")
        provider.statuses["10.0.0.2"] = make_status(name="B")
        provider.nodes["10.0.0.2"] = [make_node("Motor 1", temperature=40, voltage=220, current=3)]

        await sync_service.sync_all()

        assert repository.get_nodes_by_server(broken.id) == []
        nodes = repository.get_nodes_by_server(healthy.id)
        assert [n.name for n in nodes] == ["Motor 1"]
        assert sync_service.pass_count == 1


class TestSampling:
    @pytest.mark.asyncio
    async def test_sampling_every_third_pass(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = [
            make_node("Fan 1", voltage=220, current=1.5),
            make_node("Sensor", state="on"),
        ]

        for _ in range(4):
            await sync_service.sync_all()

        fan = repository.get_node_by_name(online_server.id, "Fan 1")
        points = repository.get_data_points(fan.id)
        # passes 0 and 3 sample; the node without readings never does
        assert len(points) == 2
        assert points[0].power_consumption == pytest.approx(330.0)
        assert repository.count_data_points() == 2

    @pytest.mark.asyncio
    async def test_telemetry_is_stored_and_acknowledged(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = make_status()
        provider.nodes[ADDRESS] = [make_node("Fan 1", node_id="n-1")]
        provider.telemetry[ADDRESS] = TelemetryBatch(
            new_data=[
                NodeTelemetry(node_id="n-1", data_points=[
                    TelemetrySample(timestamp=1_700_000_000_000, voltage=221, current=1.2),
                    TelemetrySample(timestamp=1_700_000_060_000, voltage=219, current=1.4),
                ]),
                NodeTelemetry(node_id="unknown", data_points=[
                    TelemetrySample(timestamp=1_700_000_000_000, voltage=1, current=1),
                ]),
            ],
            latest_timestamp=1_700_000_060_000,
        )

        server = repository.get_server(online_server.id)
        await sync_service.sync_server(server, sample=True)
        await sync_service.sync_server(server, sample=True)

        fan = repository.get_node_by_name(online_server.id, "Fan 1")
        assert repository.count_data_points() == 4
        assert len(repository.get_data_points(fan.id)) == 4
        since = [c[2] for c in provider.called("sync_telemetry")]
        assert since == [0, 1_700_000_060_000]
        assert provider.called("acknowledge_telemetry")[0] == ("acknowledge_telemetry", ADDRESS, 1_700_000_060_000)

    @pytest.mark.asyncio
    async def test_reset_clears_transient_state(self, repository, provider, sync_service, online_server):
        provider.statuses[ADDRESS] = None
        await sync_service.sync_all()
        assert sync_service.failure_counts() == {ADDRESS: 1}

        sync_service.reset()
        assert sync_service.failure_counts() == {}
        assert sync_service.pass_count == 0


class SlowUnreachableProvider(FakeProvider):
    """Every status fetch takes a moment and fails; tracks overlapping fetches"""

    def __init__(self):
        super().__init__()
        self.in_flight = 0
        self.max_in_flight = 0

    async def get_status(self, address, timeout=None):
        self.calls.append(("get_status", address))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(0.01)
            return None
        finally:
            self.in_flight -= 1


class TestPassSerialization:
    @pytest.mark.asyncio
    async def test_concurrent_passes_raise_one_offline_alert(self, repository, notifications, recorder, settings, online_server):
        provider = SlowUnreachableProvider()
        sync_service = DeviceSyncService(repository, provider, notifications, settings)

        await sync_service.sync_all()
        await sync_service.sync_all()
        await asyncio.gather(sync_service.sync_all(), sync_service.sync_all())

        alerts = repository.get_alerts()
        assert len(alerts) == 1
        assert alerts[0].source == "server"
        assert recorder.titles().count("Server Offline") == 1
        assert provider.max_in_flight == 1
        assert sync_service.pass_count == 4
        assert sync_service.failures.get(ADDRESS) == 4

    @pytest.mark.asyncio
    async def test_discovery_waits_for_running_pass(self, repository, notifications, settings, online_server):
        provider = SlowUnreachableProvider()
        scans = []

        class RecordingScanner:
            async def scan(self, prefix=None):
                scans.append(provider.in_flight)

        sync_service = DeviceSyncService(repository, provider, notifications, settings, scanner=RecordingScanner())

        await asyncio.gather(sync_service.sync_all(), sync_service.discover_devices())

        assert scans == [0]
        assert provider.max_in_flight == 1
        assert sync_service.pass_count == 2


class TestRetention:
    def test_old_points_are_purged(self, repository, online_server):
        node = repository.upsert_node(online_server.id, "Fan 1", status="on")
        now = get_utc_datetime()
        repository.log_data_point(node.id, 220, 1, timestamp=now - timedelta(days=40))
        repository.log_data_point(node.id, 220, 1, timestamp=now - timedelta(days=1))

        assert repository.delete_old_data_points(days=30) == 1
        assert repository.count_data_points() == 1

    def test_max_count_keeps_newest(self, repository, online_server):
        node = repository.upsert_node(online_server.id, "Fan 1", status="on")
        now = get_utc_datetime()
        for minutes in range(5):
            repository.log_data_point(node.id, 220, minutes, timestamp=now - timedelta(minutes=minutes))

        repository.delete_old_data_points(days=30, max_count=2)

        kept = repository.get_data_points(node.id)
        assert [p.current for p in kept] == [0, 1]

    @pytest.mark.asyncio
    async def test_sweep_runs_every_tenth_pass(self, repository, settings, sync_service, online_server):
        settings.retention_every_n_passes = 10
        await sync_service.sync_all()

        node = repository.upsert_node(online_server.id, "Fan 1", status="on")
        repository.log_data_point(node.id, 220, 1, timestamp=get_utc_datetime() - timedelta(days=40))

        for _ in range(9):
            await sync_service.sync_all()
            assert repository.count_data_points() == 1
        assert sync_service.pass_count == 10

        await sync_service.sync_all()
        assert repository.count_data_points() == 0


class TestCommands:
    @pytest.fixture
    def fan(self, repository, online_server):
        return repository.upsert_node(online_server.id, "Fan 1", status="off", state="off", hardware_id="n-1")

    @pytest.mark.asyncio
    async def test_toggle_success_updates_node(self, provider, sync_service, fan):
        node = await sync_service.toggle_node(fan.id, "on")
        assert (node.status, node.state) == ("on", "on")
        assert provider.called("set_node_state") == [("set_node_state", ADDRESS, "n-1", "on")]

    @pytest.mark.asyncio
    async def test_toggle_failure_raises_and_keeps_node(self, repository, provider, sync_service, fan):
        provider.command_result = False
        with pytest.raises(CommandError) as exc_info:
            await sync_service.toggle_node(fan.id, "on")
        assert exc_info.value.error_code == "COMMAND_FAILED"
        assert repository.get_node(fan.id).status == "off"
        assert len(provider.called("set_node_state")) == 1

    @pytest.mark.asyncio
    async def test_toggle_validates_input(self, sync_service, fan):
        with pytest.raises(ValueError):
            await sync_service.toggle_node(fan.id, "dim")
        with pytest.raises(NodeNotFoundError):
            await sync_service.toggle_node(9999, "on")

    @pytest.mark.asyncio
    async def test_rename_is_local_first(self, repository, provider, sync_service, online_server):
        provider.push_result = False
        server = await sync_service.rename_server(online_server.id, "Press Shop")
        assert server.name == "Press Shop"
        assert repository.get_server(online_server.id).name == "Press Shop"
        assert provider.called("update_server_config") == [("update_server_config", ADDRESS, "Press Shop")]

    @pytest.mark.asyncio
    async def test_schedule_push_failure_keeps_local_copy(self, repository, provider, sync_service, fan):
        provider.push_result = False
        schedule = await sync_service.create_schedule(
            device_id=fan.id, title="Morning", action="on", time="07:30", days=["Mon", "Tue"], date=None, enabled=True,
        )

        assert repository.get_schedule(schedule.id) is not None
        (_, address, payload), = provider.called("create_schedule")
        assert address == ADDRESS
        assert payload["scheduleId"] == str(schedule.id)
        assert payload["days"] == ["Mon", "Tue"]

        updated = await sync_service.update_schedule(schedule.id, time="08:00")
        assert updated.time == "08:00"
        await sync_service.delete_schedule(schedule.id)
        assert repository.get_schedule(schedule.id) is None
        assert provider.called("delete_schedule") == [("delete_schedule", ADDRESS, str(schedule.id))]

    @pytest.mark.asyncio
    async def test_schedule_requires_known_node(self, sync_service):
        with pytest.raises(NodeNotFoundError):
            await sync_service.create_schedule(device_id=42, action="on", time="07:30", days=[])


class TestMockFleetScenario:
    @pytest.mark.asyncio
    async def test_seed_sync_and_forced_temperature(self, repository, notifications, recorder, settings):
        provider = MockHardwareProvider(online_probability=1.0, command_failure_rate=0.0, latency=0)
        sync_service = DeviceSyncService(repository, provider, notifications, settings)

        await sync_service.sync_all()

        servers = repository.get_servers()
        assert [(s.name, s.address, s.status) for s in servers] == [("Main Server", "192.168.1.100", "online")]
        nodes = repository.get_all_nodes()
        assert len(nodes) == 5
        before = {n.name: n.status for n in nodes}

        await sync_service.sync_all()
        assert {n.name: n.status for n in repository.get_all_nodes()} == before
        assert "Device Status Changed" not in recorder.titles()

        open_before = {a.id for a in repository.get_unacknowledged_alerts()}
        provider.set_forced_temperature(96)
        await sync_service.sync_all()

        new_alerts = [a for a in repository.get_unacknowledged_alerts() if a.id not in open_before]
        assert len(new_alerts) == 2
        assert {a.level for a in new_alerts} == {"critical"}
        by_id = {n.id: n.name for n in repository.get_all_nodes()}
        assert {by_id[a.device_id] for a in new_alerts} == {"Fan 1", "Motor 1"}

    @pytest.mark.asyncio
    async def test_discovery_against_mock_runs_a_pass(self, repository, notifications, settings):
        provider = MockHardwareProvider(online_probability=1.0, latency=0)
        sync_service = DeviceSyncService(repository, provider, notifications, settings)

        assert await sync_service.discover_devices() is True
        assert len(repository.get_all_nodes()) == 5

    @pytest.mark.asyncio
    async def test_mock_toggle_is_reported_on_next_pass(self, repository, notifications, settings):
        provider = MockHardwareProvider(online_probability=1.0, command_failure_rate=0.0, latency=0)
        sync_service = DeviceSyncService(repository, provider, notifications, settings)
        await sync_service.sync_all()

        light = next(n for n in repository.get_all_nodes() if n.name == "Light 1")
        await sync_service.toggle_node(light.id, "on")
        await sync_service.sync_all()

        assert repository.get_node(light.id).status == "on"

    @pytest.mark.asyncio
    async def test_unreachable_mock_server_goes_offline(self, repository, notifications, recorder, settings):
        provider = MockHardwareProvider(online_probability=0.0, latency=0)
        sync_service = DeviceSyncService(repository, provider, notifications, settings)

        for _ in range(2):
            await sync_service.sync_all()
            assert repository.get_servers()[0].status == "online"

        await sync_service.sync_all()

        server, = repository.get_servers()
        assert (server.name, server.status) == ("Main Server", "offline")
        alert, = repository.get_alerts()
        assert (alert.level, alert.source, alert.device_id) == ("critical", "server", server.id)
        assert alert.message == "Server Main Server (192.168.1.100) is unreachable"
        assert recorder.titles().count("Server Offline") == 1
        assert repository.get_all_nodes() == []

    @pytest.mark.asyncio
    async def test_seeded_availability_drives_hysteresis(self, repository, notifications, settings):
        class ScriptedRandom(random.Random):
            def __init__(self, values):
                super().__init__(0)
                self.values = iter(values)

            def random(self):
                return next(self.values)

        # online, three misses, online again
        rng = ScriptedRandom([0.1, 0.95, 0.95, 0.95, 0.1])
        provider = MockHardwareProvider(online_probability=0.9, latency=0, rng=rng)
        sync_service = DeviceSyncService(repository, provider, notifications, settings)

        statuses = []
        for _ in range(5):
            await sync_service.sync_all()
            statuses.append(repository.get_servers()[0].status)

        assert statuses == ["online", "online", "online", "offline", "online"]
        assert len(repository.get_all_nodes()) == 5
        server_alerts = [a for a in repository.get_alerts() if a.source == "server"]
        assert len(server_alerts) == 1
