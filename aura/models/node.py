from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from aura.database import Base

class Node(Base):
    __tablename__ = "nodes"
    __table_args__ = (
        UniqueConstraint("server_id", "name", name="uq_nodes_server_name"),
    )
    
    id = Column(Integer, primary_key=True, index=True)
    server_id = Column(Integer, ForeignKey("servers.id"), nullable=False, index=True)
    name = Column(String, nullable=False)
    hardware_id = Column(String)  # nodeId reported by the server
    type = Column(String, default="GENERIC")  # FAN, LIGHT, MOTOR, SWITCH, GENERIC
    category = Column(String, default="Uncategorized", index=True)
    status = Column(String, default="off")  # "on", "off", "offline"
    state = Column(String)
    temperature = Column(Float)  # °C
    voltage = Column(Float)  # V
    current = Column(Float)  # A
    updated_at = Column(DateTime(timezone=True))
    
    server = relationship("Server", back_populates="nodes")
    data_points = relationship("DataPoint", back_populates="node")
