"""
Interaction layer between the core and whatever UI renders it.
"""
from .notifications import Notice, NoticeBoard, NoticeLevel, Notifier

__all__ = ["Notice", "NoticeBoard", "NoticeLevel", "Notifier"]
