import logging

from aura.database import Settings
from .base import HardwareProvider
from .http_provider import HttpHardwareProvider
from .mock_provider import MockHardwareProvider

logger = logging.getLogger(__name__)

def get_hardware_provider(settings: Settings) -> HardwareProvider:
    """Pick the provider once at startup from the mock-hardware flag"""
    if settings.use_mock_hardware:
        logger.warning("Hardware provider running in MOCK MODE - no physical servers are contacted")
        return MockHardwareProvider()

    logger.info("Hardware provider running in PRODUCTION MODE")
    return HttpHardwareProvider(
        timeout=settings.request_timeout_seconds,
        api_prefix=settings.hardware_api_prefix,
        port=settings.hardware_port,
    )

__all__ = [
    "HardwareProvider",
    "HttpHardwareProvider",
    "MockHardwareProvider",
    "get_hardware_provider"
]
