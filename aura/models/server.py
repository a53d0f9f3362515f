from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.orm import relationship
from aura.database import Base

class Server(Base):
    __tablename__ = "servers"
    
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    address = Column(String, unique=True, index=True, nullable=False)  # "192.168.1.100"
    status = Column(String, default="offline")  # "online", "offline"
    firmware_version = Column(String)
    uptime_seconds = Column(Integer)
    last_seen = Column(DateTime(timezone=True))
    
    nodes = relationship("Node", back_populates="server")
