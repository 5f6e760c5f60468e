"""Shared output surface that tiles are composited into."""

import io
import logging
from typing import Tuple

from PIL import Image

from .errors import ConfigurationError, TileDimensionError
from .pixels import expected_rgba_length

log = logging.getLogger(__name__)

BACKGROUND = (0, 0, 0, 0)


class FramebufferCompositor:
    """
    RGBA framebuffer of grid_size * tile_size pixels on each side.

    Each tile (x, y) owns the rectangle starting at (x * tile_size,
    y * tile_size); rectangles of distinct tiles never overlap.
    """

    def __init__(self, grid_size: int, tile_size: int):
        if not isinstance(grid_size, int) or grid_size <= 0:
            raise ConfigurationError(f"grid_size must be a positive integer, got {grid_size!r}")
        if not isinstance(tile_size, int) or tile_size <= 0:
            raise ConfigurationError(f"tile_size must be a positive integer, got {tile_size!r}")
        self.grid_size = grid_size
        self.tile_size = tile_size
        side = grid_size * tile_size
        self._surface = Image.new("RGBA", (side, side), color=BACKGROUND)

    @property
    def size(self) -> Tuple[int, int]:
        return self._surface.size

    @property
    def image(self) -> Image.Image:
        """The underlying surface. Callers must not write to it."""
        return self._surface

    def tile_rect(self, x: int, y: int) -> Tuple[int, int, int, int]:
        """Destination box (left, top, right, bottom) of tile (x, y)."""
        self._check_coords(x, y)
        left = x * self.tile_size
        top = y * self.tile_size
        return (left, top, left + self.tile_size, top + self.tile_size)

    def place(self, pixel_buffer: bytes, x: int, y: int, tile_size: int) -> None:
        """Write one RGBA tile into its slot in the framebuffer."""
        if tile_size != self.tile_size:
            raise TileDimensionError(
                f"Tile size {tile_size} does not match framebuffer tile size {self.tile_size}"
            )
        expected = expected_rgba_length(tile_size)
        if len(pixel_buffer) != expected:
            raise TileDimensionError(
                f"Pixel buffer for tile ({x}, {y}) has {len(pixel_buffer)} bytes, "
                f"expected {expected}"
            )
        left, top, _, _ = self.tile_rect(x, y)
        tile = Image.frombytes("RGBA", (tile_size, tile_size), bytes(pixel_buffer))
        self._surface.paste(tile, (left, top))

    def tile_bytes(self, x: int, y: int) -> bytes:
        """Read back the RGBA bytes currently stored for tile (x, y)."""
        return self._surface.crop(self.tile_rect(x, y)).tobytes()

    def to_png(self) -> bytes:
        buf = io.BytesIO()
        self._surface.save(buf, format="PNG")
        return buf.getvalue()

    def _check_coords(self, x: int, y: int) -> None:
        if not (0 <= x < self.grid_size and 0 <= y < self.grid_size):
            raise TileDimensionError(
                f"Tile ({x}, {y}) is outside the {self.grid_size}x{self.grid_size} grid"
            )
