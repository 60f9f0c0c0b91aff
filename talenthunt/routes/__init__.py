# Import all routes
from .auth import router as auth_router
from .registrations import router as registrations_router
from .bulk import router as bulk_router
from .payments import router as payments_router
from .contestants import router as contestants_router
from .tickets import router as tickets_router
from .locations import router as locations_router
from .health import router as health_router

# All routers that should be included in main app
__all__ = [
    "auth_router",
    "registrations_router",
    "bulk_router",
    "payments_router",
    "contestants_router",
    "tickets_router",
    "locations_router",
    "health_router",
]
