"""API routes package."""

from fileshare.routes.file_routes import router as file_router
from fileshare.routes.group_routes import router as group_router
from fileshare.routes.upload_routes import router as upload_router

__all__ = ["file_router", "group_router", "upload_router"]
