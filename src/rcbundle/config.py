"""Configuration settings for rcbundle."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_BASE_URL = "https://git.door43.org"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class Settings:
    """Application settings."""

    # Local resource container cache
    cache_root: Path = field(
        default_factory=lambda: Path.home()
        / ".rcbundle"
        / "library"
        / "resource_containers"
    )

    # Door43 content service
    base_url: str = DEFAULT_BASE_URL
    request_timeout: float = 30.0
    default_stage: str = "prod"

    # Recursive discovery bounds
    source_discovery_depth: int = 6
    local_discovery_depth: int = 8
    article_discovery_depth: int = 8

    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings, honoring RCBUNDLE_* environment overrides.

        Recognized variables:
            RCBUNDLE_CACHE_ROOT: Local cache root directory
            RCBUNDLE_BASE_URL: Content service base URL
            RCBUNDLE_TIMEOUT: Request timeout in seconds
            RCBUNDLE_LOG_LEVEL: Logging level name
        """
        settings = cls()

        cache_root = os.environ.get("RCBUNDLE_CACHE_ROOT")
        if cache_root:
            settings.cache_root = Path(cache_root).expanduser()

        base_url = os.environ.get("RCBUNDLE_BASE_URL")
        if base_url:
            settings.base_url = base_url

        timeout = os.environ.get("RCBUNDLE_TIMEOUT")
        if timeout:
            try:
                settings.request_timeout = float(timeout)
            except ValueError:
                pass  # keep default

        log_level = os.environ.get("RCBUNDLE_LOG_LEVEL")
        if log_level:
            settings.log_level = log_level.upper()

        return settings


def configure_logging(level: str | int = "WARNING") -> None:
    """Configure root logging for CLI and server entry points."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("rcbundle").setLevel(level)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
