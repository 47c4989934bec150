"""
Configuration management for Sonority.

Settings are loaded from a TOML file into dataclasses. The packaged
`sonority.toml` next to this module holds the defaults.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Path to the config directory
CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_PATH = CONFIG_DIR / "sonority.toml"


@dataclass
class ServerSettings:
    host: str = "0.0.0.0"
    port: int = 8080
    # Base URL controllers use to reach us; derived from host/port when empty.
    public_url: str = ""


@dataclass
class LibrarySettings:
    db_path: str = "sonority.db"
    music_folders: list[str] = field(default_factory=list)
    scan_on_start: bool = False


@dataclass
class StreamingSettings:
    chunk_size: int = 65536
    require_session: bool = True
    # Answer 416 instead of the full file for Range headers we cannot parse.
    reject_unsupported_ranges: bool = False


@dataclass
class ServiceSettings:
    name: str = "Sonority"


@dataclass
class SonorityConfig:
    """Loaded application configuration."""

    server: ServerSettings = field(default_factory=ServerSettings)
    library: LibrarySettings = field(default_factory=LibrarySettings)
    streaming: StreamingSettings = field(default_factory=StreamingSettings)
    service: ServiceSettings = field(default_factory=ServiceSettings)
    # username -> password, seeded into the user store at startup
    users: dict[str, str] = field(default_factory=dict)


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section [{name}] must be a table")
    return value


def _parse_config(data: dict[str, Any]) -> SonorityConfig:
    server = _section(data, "server")
    library = _section(data, "library")
    streaming = _section(data, "streaming")
    service = _section(data, "service")
    users = _section(data, "users")

    defaults = SonorityConfig()

    return SonorityConfig(
        server=ServerSettings(
            host=str(server.get("host", defaults.server.host)),
            port=int(server.get("port", defaults.server.port)),
            public_url=str(server.get("public_url", defaults.server.public_url)),
        ),
        library=LibrarySettings(
            db_path=str(library.get("db_path", defaults.library.db_path)),
            music_folders=[str(p) for p in library.get("music_folders", [])],
            scan_on_start=bool(library.get("scan_on_start", defaults.library.scan_on_start)),
        ),
        streaming=StreamingSettings(
            chunk_size=int(streaming.get("chunk_size", defaults.streaming.chunk_size)),
            require_session=bool(
                streaming.get("require_session", defaults.streaming.require_session)
            ),
            reject_unsupported_ranges=bool(
                streaming.get(
                    "reject_unsupported_ranges", defaults.streaming.reject_unsupported_ranges
                )
            ),
        ),
        service=ServiceSettings(name=str(service.get("name", defaults.service.name))),
        users={str(k): str(v) for k, v in users.items()},
    )


def load_config(config_path: Path | None = None) -> SonorityConfig:
    """
    Load configuration from a TOML file.

    Args:
        config_path: Path to the TOML file. If None, uses the packaged defaults.

    Returns:
        Loaded SonorityConfig instance.
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    logger.debug("Loading config from %s", config_path)

    with config_path.open("rb") as f:
        data = tomllib.load(f)

    return _parse_config(data)


# Global singleton instance (lazy loaded)
_config: SonorityConfig | None = None


def get_config() -> SonorityConfig:
    """
    Get the global configuration (lazy loaded singleton).

    Returns:
        The SonorityConfig instance.
    """
    global _config

    if _config is None:
        _config = load_config()

    return _config


def reload_config(config_path: Path | None = None) -> SonorityConfig:
    """
    Force reload of the configuration.

    Returns:
        The newly loaded SonorityConfig instance.
    """
    global _config
    _config = load_config(config_path)
    return _config
