from sqlalchemy import Column, Integer, String, Boolean, DateTime
from aura.database import Base

class Alert(Base):
    __tablename__ = "alerts"
    
    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(Integer, index=True)  # node id, or server id when source is "server"
    level = Column(String, nullable=False)  # "info", "warning", "critical"
    message = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), index=True)
    acknowledged = Column(Boolean, default=False, nullable=False, index=True)
    source = Column(String, default="node", nullable=False)  # "node", "server"
