from .attendance import router as attendance_router
from .events import router as events_router
from .health import router as health_router
from .offices import router as offices_router
from .users import router as users_router

# for wildcard imports
__all__ = [
    "attendance_router",
    "events_router",
    "health_router",
    "offices_router",
    "users_router",
]
