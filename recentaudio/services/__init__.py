"""Services layer for RecentAudio application logic."""

from .buffer_service import BufferingService

__all__ = [
    "BufferingService",
]
