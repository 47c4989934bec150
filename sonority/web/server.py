"""
Web Server Module for Sonority.

This module provides the WebServer class that creates and manages the
FastAPI application, registers all routes, and handles service requests.

The WebServer integrates:
- Service RPC endpoint for controllers (/ws/sonority)
- Streaming endpoint for audio playback (/stream)
- Health check (/health)
"""

from __future__ import annotations

import asyncio
import logging
import socket
from typing import TYPE_CHECKING, Any

import uvicorn
from fastapi import FastAPI

from sonority.config import StreamingSettings
from sonority.core.catalog import CatalogResolver
from sonority.web.routes.streaming import register_streaming_routes
from sonority.web.rpc import ServiceRpcHandler

if TYPE_CHECKING:
    from sonority.core.library import MusicLibrary

logger = logging.getLogger(__name__)


class WebServer:
    """
    FastAPI-based web server for Sonority.

    Provides the RPC and streaming endpoints networked speakers and their
    controllers talk to.
    """

    def __init__(
        self,
        library: MusicLibrary,
        streaming: StreamingSettings | None = None,
        service_name: str = "Sonority",
        public_url: str = "",
    ) -> None:
        """
        Initialize the WebServer.

        Args:
            library: Music library for browsing, favorites and streaming
            streaming: Streaming settings (defaults if omitted)
            service_name: Name reported by the health endpoint
            public_url: Base URL for stream URIs; derived from host/port if empty
        """
        self.library = library
        self.streaming = streaming if streaming is not None else StreamingSettings()
        self.service_name = service_name
        self.public_url = public_url

        # Create FastAPI app
        self.app = FastAPI(
            title="Sonority",
            description="Music service for networked speakers",
            version="0.1.0",
        )

        self.rpc_handler = ServiceRpcHandler(
            library=library,
            resolver=CatalogResolver(library),
            base_url=public_url or "http://127.0.0.1:8080",
        )

        # Server state
        self._server: uvicorn.Server | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._host = "0.0.0.0"
        self._port = 8080

        self._register_routes()

    def _register_routes(self) -> None:
        """Register all routes with the FastAPI app."""

        @self.app.get("/health")
        async def health_check() -> dict[str, str]:
            """Health check endpoint."""
            return {"status": "ok", "server": "sonority", "service": self.service_name}

        @self.app.post("/ws/sonority", tags=["rpc"])
        async def rpc_endpoint(request: dict[str, Any]) -> dict[str, Any]:
            """Service endpoint used by controllers."""
            return await self.rpc_handler.handle_request(request)

        register_streaming_routes(self.app, self.library, self.streaming)

    async def start(self, host: str = "0.0.0.0", port: int = 8080) -> None:
        """
        Start the web server.

        Args:
            host: Host address to bind to
            port: Port to listen on
        """
        self._host = host
        self._port = port

        # Stream URIs must be reachable from the speakers, not just from us.
        if not self.public_url:
            advertised = self._detect_lan_ip() if host == "0.0.0.0" else host
            self.rpc_handler.base_url = f"http://{advertised}:{port}"

        config = uvicorn.Config(
            self.app,
            host=host,
            port=port,
            log_level="warning",
            access_log=False,
        )
        self._server = uvicorn.Server(config)
        self._serve_task = asyncio.create_task(self._server.serve())

        logger.info("Web server started on http://%s:%d", host, port)
        logger.info("Stream URIs use %s", self.rpc_handler.base_url)

    async def stop(self) -> None:
        """Stop the web server."""
        if self._server is not None:
            self._server.should_exit = True
            self._server = None

        if self._serve_task is not None:
            await self._serve_task
            self._serve_task = None

        logger.info("Web server stopped")

    @property
    def port(self) -> int:
        """Get the server port."""
        return self._port

    @property
    def host(self) -> str:
        """Get the server host."""
        return self._host

    @staticmethod
    def _detect_lan_ip() -> str:
        """
        Detect the primary LAN IP address of this machine.

        Uses the UDP socket trick: connect to a public DNS server
        (no packet is actually sent) to determine which local
        interface would be used for outbound traffic.
        """
        try:
            with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
                s.connect(("8.8.8.8", 80))
                return s.getsockname()[0]
        except OSError:
            return "127.0.0.1"
