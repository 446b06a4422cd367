from .hooks import CompositeNotificationHook, InboxNotificationHook, LoggingNotificationHook

__all__ = [
    "CompositeNotificationHook",
    "InboxNotificationHook",
    "LoggingNotificationHook",
]
