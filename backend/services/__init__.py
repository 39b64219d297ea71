from .youtube import YouTubeClient
from .cache import TTLCache
from .live import LiveService

__all__ = ["YouTubeClient", "TTLCache", "LiveService"]
