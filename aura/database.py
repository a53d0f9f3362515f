from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from pydantic_settings import BaseSettings
from dotenv import load_dotenv

load_dotenv()

class Settings(BaseSettings):
    database_url: str = "sqlite:///./aura.db"

    # Hardware
    use_mock_hardware: bool = False
    hardware_api_prefix: str = "/api/v1"
    hardware_port: Optional[int] = None
    request_timeout_seconds: float = 2.0

    # Sync engine
    sync_interval_seconds: int = 60
    offline_failure_threshold: int = 3
    sample_every_n_passes: int = 3
    retention_every_n_passes: int = 10
    retention_days: int = 30
    retention_max_points: Optional[int] = None

    # Discovery
    discovery_timeout_seconds: float = 0.5
    discovery_batch_size: int = 20
    discovery_subnet: Optional[str] = None
    auto_discover: bool = False

    # Notifications
    notifications_enabled: bool = True
    gotify_url: Optional[str] = None
    gotify_token: Optional[str] = None

    log_level: str = "INFO"
    debug: bool = False

settings = Settings()

def make_engine(database_url: str):
    return create_engine(
        database_url,
        connect_args={"check_same_thread": False} if "sqlite" in database_url else {}
    )

engine = make_engine(settings.database_url)

Base = declarative_base()

def get_utc_datetime() -> datetime:
    """Current UTC time as an aware datetime"""
    return datetime.now(timezone.utc)
