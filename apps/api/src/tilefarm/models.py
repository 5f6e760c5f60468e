"""Tile job state and pydantic models for API requests and responses."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from .errors import InvalidTransitionError


class TileStatus(str, Enum):
    """Tile job status enumeration."""

    PENDING = "pending"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = (TileStatus.COMPLETED, TileStatus.FAILED)


@dataclass
class TileJob:
    """One tile of a render pass and where it was sent."""

    x: int
    y: int
    tile_size: int
    payload: str
    assigned_endpoint: Optional[str] = None
    status: TileStatus = TileStatus.PENDING
    error: Optional[str] = None

    @property
    def terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def mark_in_flight(self, endpoint: str) -> None:
        if self.status != TileStatus.PENDING:
            raise InvalidTransitionError(
                f"Tile ({self.x}, {self.y}) cannot go in flight from {self.status.value}"
            )
        self.assigned_endpoint = endpoint
        self.status = TileStatus.IN_FLIGHT

    def mark_completed(self) -> None:
        self._finish(TileStatus.COMPLETED)

    def mark_failed(self, error: str) -> None:
        self._finish(TileStatus.FAILED)
        self.error = error

    def _finish(self, status: TileStatus) -> None:
        if self.status != TileStatus.IN_FLIGHT:
            raise InvalidTransitionError(
                f"Tile ({self.x}, {self.y}) cannot become {status.value} "
                f"from {self.status.value}"
            )
        self.status = status

    def request_body(self, payload_key: str) -> Dict:
        """JSON body sent to the endpoint for this tile."""
        return {
            "x": self.x,
            "y": self.y,
            "tile_size": self.tile_size,
            payload_key: self.payload,
        }


class RenderRequest(BaseModel):
    """Request to start a render pass."""

    scene: str
    grid_size: int = Field(..., gt=0, le=256)
    tile_size: int = Field(..., gt=0, le=4096)


class RenderPassResponse(BaseModel):
    """Response when a render pass has been dispatched."""

    pass_id: str
    total: int


class TileRef(BaseModel):
    x: int
    y: int
    endpoint: Optional[str] = None
    error: Optional[str] = None


class RenderStatusResponse(BaseModel):
    """Progress of the current render pass."""

    pass_id: str
    status: str
    total: int
    completed: int
    finished: bool
    elapsed_seconds: Optional[int] = None
    counts: Dict[str, int]
    failed_tiles: List[TileRef]
