from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class ServerResponse(BaseModel):
    id: int
    name: str
    address: str
    status: str
    firmware_version: Optional[str] = None
    uptime_seconds: Optional[int] = None
    last_seen: Optional[datetime] = None
    
    class Config:
        from_attributes = True

class ServerRename(BaseModel):
    name: str

class DiscoveryResponse(BaseModel):
    success: bool
    servers: int
