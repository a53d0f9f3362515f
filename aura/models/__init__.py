from aura.database import Base
from .server import Server
from .node import Node
from .alert import Alert
from .data_point import DataPoint
from .schedule import Schedule

__all__ = [
    "Base",
    "Server",
    "Node",
    "Alert",
    "DataPoint",
    "Schedule"
]
