"""
Sonority Web Layer.

This package provides the HTTP layer for Sonority: the service RPC
endpoint controllers browse with, and the streaming endpoint speakers
fetch audio from.

Components:
- WebServer: FastAPI application with all routes
- ServiceRpcHandler: method dispatch and fault translation
"""

from sonority.web.rpc import ServiceRpcHandler
from sonority.web.server import WebServer

__all__ = [
    "WebServer",
    "ServiceRpcHandler",
]
