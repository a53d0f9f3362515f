"""
Local store accessor: CRUD over servers, nodes, alerts, data points and schedules.
Every operation runs in its own session and commits before returning.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from aura.database import get_utc_datetime
from aura.exceptions import AlertNotFoundError, NodeNotFoundError, ScheduleNotFoundError, ServerNotFoundError
from aura.models import Alert, DataPoint, Node, Schedule, Server

logger = logging.getLogger(__name__)

class Repository:
    """Row store used by the sync engine and the API"""

    def __init__(self, engine):
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )

    @contextmanager
    def _session(self):
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # Servers

    def get_servers(self) -> List[Server]:
        with self._session() as db:
            return db.query(Server).order_by(Server.id).all()

    def get_server(self, server_id: int) -> Optional[Server]:
        with self._session() as db:
            return db.query(Server).filter(Server.id == server_id).first()

    def upsert_server(
        self,
        name: str,
        address: str,
        status: str,
        firmware_version: Optional[str] = None,
        uptime_seconds: Optional[int] = None,
        seen: bool = False,
    ) -> Server:
        """Insert or update the server row keyed by address"""
        with self._session() as db:
            server = db.query(Server).filter(Server.address == address).first()
            if server is None:
                server = Server(address=address)
                db.add(server)
            server.name = name
            server.status = status
            if firmware_version is not None:
                server.firmware_version = firmware_version
            if uptime_seconds is not None:
                server.uptime_seconds = uptime_seconds
            if seen:
                server.last_seen = get_utc_datetime()
            db.flush()
            return server

    def update_server_status(self, server_id: int, status: str) -> None:
        with self._session() as db:
            server = db.query(Server).filter(Server.id == server_id).first()
            if server is None:
                raise ServerNotFoundError(server_id)
            server.status = status

    def rename_server(self, server_id: int, name: str) -> Server:
        with self._session() as db:
            server = db.query(Server).filter(Server.id == server_id).first()
            if server is None:
                raise ServerNotFoundError(server_id)
            server.name = name
            return server

    # Nodes

    def get_all_nodes(self) -> List[Node]:
        with self._session() as db:
            return db.query(Node).order_by(Node.id).all()

    def get_nodes_by_server(self, server_id: int) -> List[Node]:
        with self._session() as db:
            return db.query(Node).filter(Node.server_id == server_id).order_by(Node.id).all()

    def get_node(self, node_id: int) -> Optional[Node]:
        with self._session() as db:
            return db.query(Node).filter(Node.id == node_id).first()

    def get_node_by_name(self, server_id: int, name: str) -> Optional[Node]:
        with self._session() as db:
            return db.query(Node).filter(Node.server_id == server_id, Node.name == name).first()

    def upsert_node(
        self,
        server_id: int,
        name: str,
        type: str = "GENERIC",
        category: str = "Uncategorized",
        status: str = "off",
        state: Optional[str] = None,
        temperature: Optional[float] = None,
        voltage: Optional[float] = None,
        current: Optional[float] = None,
        hardware_id: Optional[str] = None,
    ) -> Node:
        """Insert or update the node row keyed by (server_id, name)"""
        with self._session() as db:
            node = db.query(Node).filter(Node.server_id == server_id, Node.name == name).first()
            if node is None:
                node = Node(server_id=server_id, name=name)
                db.add(node)
            node.hardware_id = hardware_id or node.hardware_id
            node.type = type
            node.category = category
            node.status = status
            node.state = state
            node.temperature = temperature
            node.voltage = voltage
            node.current = current
            node.updated_at = get_utc_datetime()
            db.flush()
            return node

    def update_node_status(self, node_id: int, status: str, state: Optional[str] = None) -> Node:
        with self._session() as db:
            node = db.query(Node).filter(Node.id == node_id).first()
            if node is None:
                raise NodeNotFoundError(node_id)
            node.status = status
            node.state = state or status
            node.updated_at = get_utc_datetime()
            return node

    # Alerts

    def create_alert(self, device_id: int, level: str, message: str, source: str = "node") -> Alert:
        with self._session() as db:
            alert = Alert(
                device_id=device_id,
                level=level,
                message=message,
                created_at=get_utc_datetime(),
                acknowledged=False,
                source=source,
            )
            db.add(alert)
            db.flush()
            return alert

    def get_unacknowledged_alerts(self) -> List[Alert]:
        with self._session() as db:
            return (
                db.query(Alert)
                .filter(Alert.acknowledged == False)  # noqa: E712
                .order_by(Alert.created_at.desc(), Alert.id.desc())
                .all()
            )

    def get_alerts(self, unacknowledged_only: bool = False, limit: int = 100) -> List[Alert]:
        with self._session() as db:
            query = db.query(Alert)
            if unacknowledged_only:
                query = query.filter(Alert.acknowledged == False)  # noqa: E712
            return query.order_by(Alert.created_at.desc(), Alert.id.desc()).limit(limit).all()

    def acknowledge_alert(self, alert_id: int) -> Alert:
        with self._session() as db:
            alert = db.query(Alert).filter(Alert.id == alert_id).first()
            if alert is None:
                raise AlertNotFoundError(alert_id)
            alert.acknowledged = True
            return alert

    # Data points

    def log_data_point(
        self,
        node_id: int,
        voltage: float,
        current: float,
        timestamp: Optional[datetime] = None,
    ) -> DataPoint:
        with self._session() as db:
            point = DataPoint(
                node_id=node_id,
                voltage=voltage,
                current=current,
                power_consumption=voltage * current,
                timestamp=timestamp or get_utc_datetime(),
            )
            db.add(point)
            db.flush()
            return point

    def get_data_points(self, node_id: int, limit: int = 500) -> List[DataPoint]:
        with self._session() as db:
            return (
                db.query(DataPoint)
                .filter(DataPoint.node_id == node_id)
                .order_by(DataPoint.timestamp.desc())
                .limit(limit)
                .all()
            )

    def count_data_points(self) -> int:
        with self._session() as db:
            return db.query(DataPoint).count()

    def delete_old_data_points(self, days: int = 30, max_count: Optional[int] = None) -> int:
        """Purge points older than the horizon, then trim to the newest max_count"""
        cutoff = get_utc_datetime() - timedelta(days=days)
        with self._session() as db:
            deleted = (
                db.query(DataPoint)
                .filter(DataPoint.timestamp < cutoff)
                .delete(synchronize_session=False)
            )
            if max_count is not None:
                keep_ids = (
                    db.query(DataPoint.id)
                    .order_by(DataPoint.timestamp.desc(), DataPoint.id.desc())
                    .limit(max_count)
                    .subquery()
                )
                deleted += (
                    db.query(DataPoint)
                    .filter(DataPoint.id.notin_(select(keep_ids.c.id)))
                    .delete(synchronize_session=False)
                )
        if deleted:
            logger.info(f"Retention sweep removed {deleted} data points")
        return deleted

    # Schedules

    def get_schedules(self) -> List[Schedule]:
        with self._session() as db:
            return db.query(Schedule).order_by(Schedule.time).all()

    def get_schedule(self, schedule_id: int) -> Optional[Schedule]:
        with self._session() as db:
            return db.query(Schedule).filter(Schedule.id == schedule_id).first()

    def create_schedule(self, **fields) -> Schedule:
        with self._session() as db:
            schedule = Schedule(**fields)
            db.add(schedule)
            db.flush()
            return schedule

    def update_schedule(self, schedule_id: int, **fields) -> Schedule:
        with self._session() as db:
            schedule = db.query(Schedule).filter(Schedule.id == schedule_id).first()
            if schedule is None:
                raise ScheduleNotFoundError(schedule_id)
            for key, value in fields.items():
                setattr(schedule, key, value)
            return schedule

    def delete_schedule(self, schedule_id: int) -> Schedule:
        with self._session() as db:
            schedule = db.query(Schedule).filter(Schedule.id == schedule_id).first()
            if schedule is None:
                raise ScheduleNotFoundError(schedule_id)
            db.delete(schedule)
            return schedule
