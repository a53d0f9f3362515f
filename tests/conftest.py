"""
Shared fixtures: in-memory store, recording notifications, scripted provider
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from aura.database import Settings
from aura.models import Base
from aura.providers.base import HardwareProvider
from aura.repository import Repository
from aura.schemas.hardware import LinkedNode, ServerStatus
from aura.services.device_sync import DeviceSyncService
from aura.services.notifications import NotificationService


class RecordingBackend:
    """Notification backend that keeps everything it is asked to deliver"""

    def __init__(self):
        self.sent = []

    async def deliver(self, title, body, data, priority):
        self.sent.append({"title": title, "body": body, "data": data, "priority": priority})

    def titles(self):
        return [n["title"] for n in self.sent]


class FakeProvider(HardwareProvider):
    """Scripted provider keyed by address.

    statuses[address] may be a ServerStatus, None (unreachable) or an
    exception instance to raise.
    """

    def __init__(self):
        self.statuses = {}
        self.nodes = {}
        self.telemetry = {}
        self.command_result = True
        self.push_result = True
        self.calls = []

    async def get_status(self, address, timeout=None):
        self.calls.append(("get_status", address))
        result = self.statuses.get(address)
        if isinstance(result, Exception):
            raise result
        return result

    async def get_linked_nodes(self, address):
        self.calls.append(("get_linked_nodes", address))
        result = self.nodes.get(address)
        if isinstance(result, Exception):
            raise result
        return result

    async def set_node_state(self, address, node_identifier, state):
        self.calls.append(("set_node_state", address, node_identifier, state))
        return self.command_result

    async def sync_telemetry(self, address, since_timestamp):
        self.calls.append(("sync_telemetry", address, since_timestamp))
        return self.telemetry.get(address)

    async def acknowledge_telemetry(self, address, watermark):
        self.calls.append(("acknowledge_telemetry", address, watermark))
        return True

    async def create_schedule(self, address, schedule):
        self.calls.append(("create_schedule", address, schedule))
        return self.push_result

    async def update_schedule(self, address, schedule_id, schedule):
        self.calls.append(("update_schedule", address, schedule_id, schedule))
        return self.push_result

    async def delete_schedule(self, address, schedule_id):
        self.calls.append(("delete_schedule", address, schedule_id))
        return self.push_result

    async def update_server_config(self, address, name):
        self.calls.append(("update_server_config", address, name))
        return self.push_result

    def called(self, operation):
        return [c for c in self.calls if c[0] == operation]


def make_status(name="Gateway", server_id="gw-1"):
    return ServerStatus(id=server_id, name=name, firmware_version="2.1.0", uptime_seconds=120)


def make_node(name, state="on", node_id=None, **readings):
    return LinkedNode(
        node_id=node_id or name.lower().replace(" ", "-"),
        node_name=name,
        status=readings.pop("status", "online"),
        state=state,
        **readings,
    )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(engine):
    return Repository(engine)


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite://",
        use_mock_hardware=False,
        notifications_enabled=True,
        gotify_url=None,
        gotify_token=None,
        auto_discover=False,
        retention_max_points=None,
    )


@pytest.fixture
def recorder():
    return RecordingBackend()


@pytest.fixture
def notifications(recorder):
    return NotificationService(backend=recorder)


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def sync_service(repository, provider, notifications, settings):
    return DeviceSyncService(repository, provider, notifications, settings)
