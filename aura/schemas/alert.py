from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class AlertResponse(BaseModel):
    id: int
    device_id: Optional[int] = None
    level: str
    message: str
    created_at: Optional[datetime] = None
    acknowledged: bool = False
    source: str = "node"
    
    class Config:
        from_attributes = True
