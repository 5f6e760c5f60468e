"""Error taxonomy for tile dispatch and compositing."""

from typing import Optional


class TilefarmError(Exception):
    """Base class for all tilefarm errors."""


class ConfigurationError(TilefarmError, ValueError):
    """Invalid pool, size, or setting. Raised before a render pass starts."""


class TileError(TilefarmError):
    """A single tile could not be rendered. Recovered locally by the dispatcher."""


class TileTransportError(TileError):
    """Network failure, timeout, or non-success status for one tile."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TileProtocolError(TileError):
    """Response body does not have the expected RGB byte length."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"expected {expected} bytes of RGB data, got {actual}")
        self.expected = expected
        self.actual = actual


class ProgrammingError(TilefarmError, RuntimeError):
    """Caller misuse. Never recovered."""


class TileDimensionError(ProgrammingError):
    """Pixel buffer or coordinates do not fit the framebuffer grid."""


class RenderInProgressError(ProgrammingError):
    """A render pass was started while a previous one still has jobs in flight."""


class InvalidTransitionError(ProgrammingError):
    """A tile job was moved out of a terminal state or skipped a state."""
