"""Tile pixel decoding and error placeholders."""

from functools import lru_cache

from PIL import Image, ImageDraw, ImageFont

from .errors import ConfigurationError, TileProtocolError

ERROR_COLOR = (255, 0, 0, 255)
ERROR_LABEL = "error getting tile"
LABEL_COLOR = (255, 255, 255, 255)


def _check_tile_size(tile_size: int) -> None:
    if not isinstance(tile_size, int) or tile_size <= 0:
        raise ConfigurationError(f"tile_size must be a positive integer, got {tile_size!r}")


def expected_rgb_length(tile_size: int) -> int:
    """Number of bytes an endpoint must return for one tile."""
    _check_tile_size(tile_size)
    return tile_size * tile_size * 3


def expected_rgba_length(tile_size: int) -> int:
    _check_tile_size(tile_size)
    return tile_size * tile_size * 4


def decode(raw_bytes: bytes, tile_size: int) -> bytes:
    """
    Convert a row-major RGB tile into row-major RGBA with opaque alpha.

    Args:
        raw_bytes: exactly tile_size * tile_size * 3 bytes
        tile_size: side length of the square tile in pixels

    Returns:
        tile_size * tile_size * 4 bytes

    Raises:
        TileProtocolError: if raw_bytes has any other length
    """
    expected = expected_rgb_length(tile_size)
    if len(raw_bytes) != expected:
        raise TileProtocolError(expected, len(raw_bytes))
    tile = Image.frombytes("RGB", (tile_size, tile_size), bytes(raw_bytes))
    return tile.convert("RGBA").tobytes()


@lru_cache(maxsize=16)
def paint_error_tile(tile_size: int) -> bytes:
    """
    Solid red RGBA tile marking a failed render.

    The "error getting tile" label is centered on the tile when it fits;
    smaller tiles stay plain red.
    """
    _check_tile_size(tile_size)
    img = Image.new("RGBA", (tile_size, tile_size), color=ERROR_COLOR)
    draw = ImageDraw.Draw(img)
    font = ImageFont.load_default()

    left, top, right, bottom = draw.textbbox((0, 0), ERROR_LABEL, font=font)
    width = right - left
    height = bottom - top
    if width + 2 <= tile_size and height + 2 <= tile_size:
        origin = (
            (tile_size - width) // 2 - left,
            (tile_size - height) // 2 - top,
        )
        draw.text(origin, ERROR_LABEL, fill=LABEL_COLOR, font=font)

    return img.tobytes()
