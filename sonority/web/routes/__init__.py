"""
Web Routes Package.

This package contains FastAPI route modules:
- streaming: Audio streaming (/stream)
"""

from sonority.web.routes.streaming import register_streaming_routes

__all__ = [
    "register_streaming_routes",
]
