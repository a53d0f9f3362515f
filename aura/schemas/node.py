from pydantic import BaseModel
from typing import Optional, Literal
from datetime import datetime

class NodeResponse(BaseModel):
    id: int
    server_id: int
    name: str
    hardware_id: Optional[str] = None
    type: str
    category: str
    status: str
    state: Optional[str] = None
    temperature: Optional[float] = None
    voltage: Optional[float] = None
    current: Optional[float] = None
    updated_at: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class NodeStateUpdate(BaseModel):
    state: Literal["on", "off"]

class DataPointResponse(BaseModel):
    id: int
    node_id: int
    voltage: float
    current: float
    power_consumption: float
    timestamp: datetime
    
    class Config:
        from_attributes = True
