"""API routers."""

from .analytics import router

__all__ = ["router"]
