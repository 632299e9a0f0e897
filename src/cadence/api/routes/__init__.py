from .chat import router as chat_router
from .cron import router as cron_router
from .debug import router as debug_router
from .health import router as health_router
from .sync import router as sync_router

__all__ = [
    "chat_router",
    "cron_router",
    "debug_router",
    "health_router",
    "sync_router",
]
