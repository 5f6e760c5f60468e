"""Configuration from environment variables."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from .errors import ConfigurationError

# Load environment variables from project root
project_root = Path(__file__).parent.parent.parent.parent.parent
load_dotenv(project_root / ".env")

PAYLOAD_KEYS = ("data", "filename")
TRANSPORTS = ("mock", "http")

# Endpoint pool: comma-separated base URLs, rotated round-robin
TILEFARM_ENDPOINTS = os.getenv("TILEFARM_ENDPOINTS", "")
TILEFARM_TILE_PATH = os.getenv("TILEFARM_TILE_PATH", "/rendertile")

# Wire shape: which key carries the scene payload
TILEFARM_PAYLOAD_KEY = os.getenv("TILEFARM_PAYLOAD_KEY", "data")

# Transport selection
TILEFARM_TRANSPORT = os.getenv("TILEFARM_TRANSPORT", "mock")

# Timeout and concurrency
TILEFARM_TIMEOUT_SECONDS = os.getenv("TILEFARM_TIMEOUT_SECONDS", "120")
TILEFARM_MAX_IN_FLIGHT = os.getenv("TILEFARM_MAX_IN_FLIGHT", "0")
TILEFARM_HTTP_WORKERS = os.getenv("TILEFARM_HTTP_WORKERS", "32")

# Largest framebuffer side, in pixels, a render pass may ask for
TILEFARM_MAX_IMAGE_SIZE = os.getenv("TILEFARM_MAX_IMAGE_SIZE", "8192")

TILEFARM_LOG_LEVEL = os.getenv("TILEFARM_LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings."""

    endpoints: List[str] = field(default_factory=list)
    tile_path: str = "/rendertile"
    payload_key: str = "data"
    transport: str = "mock"
    timeout_seconds: float = 120.0
    max_in_flight: int = 0
    http_workers: int = 32
    max_image_size: int = 8192
    log_level: str = "INFO"


def parse_endpoints(raw: str) -> List[str]:
    """Split a comma-separated endpoint list, dropping empty entries."""
    return [part.strip() for part in raw.split(",") if part.strip()]


def _parse_number(name: str, raw: str, cast, minimum):
    try:
        value = cast(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value < minimum:
        raise ConfigurationError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(
    endpoints: Optional[str] = None,
    payload_key: Optional[str] = None,
    transport: Optional[str] = None,
) -> Settings:
    """
    Build Settings from the environment.

    Explicit arguments override the corresponding environment variables.
    Raises ConfigurationError for unknown payload keys, unknown transports,
    or numeric settings out of range. An empty endpoint list is allowed here
    for the mock transport; EndpointPool rejects it when one is built.
    """
    payload_key = (payload_key or TILEFARM_PAYLOAD_KEY).strip()
    if payload_key not in PAYLOAD_KEYS:
        raise ConfigurationError(
            f"TILEFARM_PAYLOAD_KEY must be one of {PAYLOAD_KEYS}, got {payload_key!r}"
        )

    transport = (transport or TILEFARM_TRANSPORT).strip().lower()
    if transport not in TRANSPORTS:
        raise ConfigurationError(
            f"TILEFARM_TRANSPORT must be one of {TRANSPORTS}, got {transport!r}"
        )

    tile_path = TILEFARM_TILE_PATH.strip()
    if tile_path and not tile_path.startswith("/"):
        tile_path = "/" + tile_path

    return Settings(
        endpoints=parse_endpoints(
            TILEFARM_ENDPOINTS if endpoints is None else endpoints
        ),
        tile_path=tile_path,
        payload_key=payload_key,
        transport=transport,
        timeout_seconds=_parse_number(
            "TILEFARM_TIMEOUT_SECONDS", TILEFARM_TIMEOUT_SECONDS, float, 0.001
        ),
        max_in_flight=_parse_number(
            "TILEFARM_MAX_IN_FLIGHT", TILEFARM_MAX_IN_FLIGHT, int, 0
        ),
        http_workers=_parse_number(
            "TILEFARM_HTTP_WORKERS", TILEFARM_HTTP_WORKERS, int, 1
        ),
        max_image_size=_parse_number(
            "TILEFARM_MAX_IMAGE_SIZE", TILEFARM_MAX_IMAGE_SIZE, int, 1
        ),
        log_level=TILEFARM_LOG_LEVEL.upper(),
    )
