from .notifications import NotificationService, LogNotificationBackend, GotifyNotificationBackend
from .alerts import AlertDispatcher, AlertCandidate, evaluate_thresholds, dedup_key
from .discovery import SubnetScanner
from .device_sync import DeviceSyncService
from .scheduler import SyncScheduler, SchedulerState

__all__ = [
    "NotificationService",
    "LogNotificationBackend",
    "GotifyNotificationBackend",
    "AlertDispatcher",
    "AlertCandidate",
    "evaluate_thresholds",
    "dedup_key",
    "SubnetScanner",
    "DeviceSyncService",
    "SyncScheduler",
    "SchedulerState"
]
