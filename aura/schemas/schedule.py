from pydantic import BaseModel, Field
from typing import Optional, List, Literal

class ScheduleBase(BaseModel):
    device_id: int
    title: Optional[str] = None
    action: Literal["on", "off"]
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")
    days: List[str] = []
    date: Optional[str] = None
    enabled: bool = True

class ScheduleCreate(ScheduleBase):
    pass

class ScheduleUpdate(ScheduleBase):
    pass

class ScheduleResponse(ScheduleBase):
    id: int
    
    class Config:
        from_attributes = True
