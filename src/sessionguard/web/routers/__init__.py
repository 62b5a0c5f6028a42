from sessionguard.web.routers.devices import router as devices_router
from sessionguard.web.routers.sessions import router as sessions_router

__all__ = [
    "devices_router",
    "sessions_router",
]
