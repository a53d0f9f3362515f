from sqlalchemy import Column, Integer, String, Boolean, JSON, ForeignKey
from aura.database import Base

class Schedule(Base):
    __tablename__ = "schedules"
    
    id = Column(Integer, primary_key=True, index=True)
    device_id = Column(Integer, ForeignKey("nodes.id"), index=True)
    title = Column(String)
    action = Column(String, nullable=False)  # "on", "off"
    time = Column(String, nullable=False)  # "HH:MM"
    days = Column(JSON, default=list)  # ["Mon", "Tue"]
    date = Column(String)  # one-shot date, "YYYY-MM-DD"
    enabled = Column(Boolean, default=True, index=True)
