"""
HTTP API routers
"""

from .prices import router

__all__ = ["router"]
