"""API routes for the tile render coordinator."""

from typing import Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response

from .config import load_settings
from .dispatcher import RenderPass, TileJobDispatcher, build_dispatcher
from .errors import ConfigurationError, RenderInProgressError
from .models import (
    RenderPassResponse,
    RenderRequest,
    RenderStatusResponse,
    TileRef,
)

router = APIRouter()

_dispatcher: Optional[TileJobDispatcher] = None


def get_dispatcher() -> TileJobDispatcher:
    """Get the process dispatcher, building it from settings on first use."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = build_dispatcher(load_settings())
    return _dispatcher


def set_dispatcher(dispatcher: Optional[TileJobDispatcher]) -> None:
    """Replace the process dispatcher (None rebuilds it from settings)."""
    global _dispatcher
    if _dispatcher is not None and _dispatcher is not dispatcher:
        _dispatcher.close()
    _dispatcher = dispatcher


def _current_pass() -> RenderPass:
    render_pass = get_dispatcher().current_pass
    if render_pass is None:
        raise HTTPException(status_code=404, detail="No render pass has been started")
    return render_pass


@router.post("/render", response_model=RenderPassResponse)
async def render(request: RenderRequest):
    """
    Dispatch a render pass and return immediately.
    Use GET /render/status to follow progress.
    """
    dispatcher = get_dispatcher()
    try:
        render_pass = dispatcher.start(
            request.scene, request.grid_size, request.tile_size
        )
    except RenderInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ConfigurationError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return RenderPassResponse(
        pass_id=render_pass.pass_id, total=render_pass.progress.total
    )


@router.get("/render/status", response_model=RenderStatusResponse)
async def render_status():
    """Get progress of the current render pass."""
    render_pass = _current_pass()
    snapshot = render_pass.progress.snapshot()
    failed = [
        TileRef(x=job.x, y=job.y, endpoint=job.assigned_endpoint, error=job.error)
        for job in render_pass.failed_tiles()
    ]
    return RenderStatusResponse(
        pass_id=render_pass.pass_id,
        status=snapshot.status,
        total=snapshot.total,
        completed=snapshot.completed,
        finished=snapshot.finished,
        elapsed_seconds=snapshot.elapsed_seconds,
        counts=render_pass.counts(),
        failed_tiles=failed,
    )


@router.get("/render/framebuffer.png")
async def framebuffer_png():
    """Current framebuffer contents as a PNG image."""
    render_pass = _current_pass()
    return Response(content=render_pass.compositor.to_png(), media_type="image/png")
