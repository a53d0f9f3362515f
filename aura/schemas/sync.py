from pydantic import BaseModel

class SyncStatusResponse(BaseModel):
    scheduler_state: str
    interval_seconds: int
    pass_count: int
    failure_counts: dict = {}
