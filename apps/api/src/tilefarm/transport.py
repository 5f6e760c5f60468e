"""Tile transports: how a tile request reaches a rendering endpoint."""

import logging
from typing import Dict, Optional, Protocol

import requests

from .config import Settings
from .errors import TileTransportError

log = logging.getLogger(__name__)


class TileTransport(Protocol):
    """Protocol for tile transports."""

    def fetch_tile(self, endpoint: str, body: Dict) -> bytes:
        """
        Send one tile request and return the raw response body.

        Raises:
            TileTransportError: on network failure, timeout or non-success status
        """
        ...


def gradient_tile(x: int, y: int, tile_size: int) -> bytes:
    """Deterministic RGB tile: red follows image columns, green follows rows."""
    data = bytearray(tile_size * tile_size * 3)
    base_col = x * tile_size
    base_row = y * tile_size
    for i in range(tile_size):
        green = (base_row + i) % 256
        for j in range(tile_size):
            offset = 3 * (i * tile_size + j)
            data[offset] = (base_col + j) % 256
            data[offset + 1] = green
            data[offset + 2] = 128
    return bytes(data)


class MockTileTransport:
    """Mock transport that renders gradient tiles without touching the network."""

    def fetch_tile(self, endpoint: str, body: Dict) -> bytes:
        return gradient_tile(body["x"], body["y"], body["tile_size"])


class HttpTileTransport:
    """POSTs tile requests as JSON and returns the raw RGB body."""

    def __init__(self, tile_path: str = "/rendertile", timeout: float = 120.0):
        self.tile_path = tile_path
        self.timeout = timeout

    def url_for(self, endpoint: str) -> str:
        return f"{endpoint.rstrip('/')}{self.tile_path}"

    def fetch_tile(self, endpoint: str, body: Dict) -> bytes:
        url = self.url_for(endpoint)
        try:
            response = requests.post(
                url,
                json=body,
                headers={"Accept": "application/octet-stream"},
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise TileTransportError(
                f"{url} → HTTP {status_code}", status_code=status_code
            ) from e
        except requests.exceptions.Timeout as e:
            raise TileTransportError(
                f"{url} → timed out after {self.timeout}s"
            ) from e
        except requests.exceptions.RequestException as e:
            raise TileTransportError(f"{url} → {str(e)[:200]}") from e
        return response.content


def get_transport(settings: Optional[Settings] = None) -> TileTransport:
    """Get the configured tile transport."""
    if settings is not None and settings.transport == "http":
        return HttpTileTransport(
            tile_path=settings.tile_path, timeout=settings.timeout_seconds
        )
    return MockTileTransport()
