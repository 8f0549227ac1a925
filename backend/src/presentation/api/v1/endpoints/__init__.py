"""
API V1 Endpoints Package
Exports routers used by main app
"""
from .admin import router as admin_router
from .applications import router as applications_router
from .projects import router as projects_router
from .streams import router as streams_router
from .users import router as users_router

__all__ = [
    "admin_router",
    "applications_router",
    "projects_router",
    "streams_router",
    "users_router",
]
