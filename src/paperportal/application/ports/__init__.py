"""Application ports (interfaces) used by the application layer."""

from .directory_port import DirectoryPort
from .notification_port import NotificationHook, NullNotificationHook, TransitionEvent
from .paper_record_port import PaperRecordPort

__all__ = [
    "DirectoryPort",
    "NotificationHook",
    "NullNotificationHook",
    "PaperRecordPort",
    "TransitionEvent",
]
