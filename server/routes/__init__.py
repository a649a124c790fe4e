"""API route modules."""

from server.routes.upload_routes import router as upload_router
from server.routes.file_routes import router as file_router

__all__ = ["upload_router", "file_router"]
