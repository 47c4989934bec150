"""
Sonority - Main Server Module

This module contains the main SonorityServer class that orchestrates
all server components and manages the application lifecycle.
"""

import asyncio
import logging
import signal
from pathlib import Path

from sonority.config import SonorityConfig, get_config
from sonority.core.library import MusicLibrary
from sonority.core.library_db import LibraryDb
from sonority.web.server import WebServer

logger = logging.getLogger(__name__)


class SonorityServer:
    """
    Main Sonority server that coordinates all components.

    The server manages:
    - Catalog store (SQLite) and the music library facade
    - Optional scan of the configured music folders at startup
    - Web server for the service RPC endpoint and audio streaming
    """

    def __init__(self, config: SonorityConfig | None = None, *, scan: bool | None = None) -> None:
        """
        Initialize the Sonority server.

        Args:
            config: Application configuration (global config if omitted).
            scan: Scan music folders on start; overrides `library.scan_on_start`.
        """
        self.config = config if config is not None else get_config()
        self.scan_on_start = self.config.library.scan_on_start if scan is None else scan

        self.library_db = LibraryDb(db_path=self.config.library.db_path)

        # Core library (kept independent of any web layer)
        self.music_library = MusicLibrary(
            db=self.library_db,
            music_folders=[Path(p) for p in self.config.library.music_folders],
        )

        self.web_server: WebServer | None = None

        # Server state
        self._running = False
        self._shutdown_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Start all server components."""
        server = self.config.server
        logger.info("Starting Sonority server on %s:%d", server.host, server.port)

        self._running = True
        self._shutdown_event = asyncio.Event()

        await self.library_db.open()
        await self.music_library.initialize()

        await self.music_library.sync_music_folders()
        for username, password in self.config.users.items():
            await self.music_library.add_user(username, password)
        if self.config.users:
            logger.info("Seeded %d users", len(self.config.users))

        if self.scan_on_start:
            await self.music_library.scan()

        self.web_server = WebServer(
            library=self.music_library,
            streaming=self.config.streaming,
            service_name=self.config.service.name,
            public_url=server.public_url,
        )
        await self.web_server.start(host=server.host, port=server.port)

        logger.info("Sonority server started successfully")

    async def stop(self) -> None:
        """Stop all server components gracefully."""
        if not self._running:
            return

        logger.info("Stopping Sonority server...")
        self._running = False

        # Stop Web server first so no request hits a closed DB
        if self.web_server:
            await self.web_server.stop()

        # Close library DB last, after all components are stopped.
        await self.library_db.close()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Sonority server stopped")

    async def run(self) -> None:
        """
        Run the server until shutdown is requested.

        This method starts all components and waits for a shutdown signal
        (SIGINT or SIGTERM).
        """
        await self.start()

        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Signal handlers not supported on Windows
                pass

        if self._shutdown_event:
            await self._shutdown_event.wait()

        await self.stop()

    @property
    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running
