"""Async tile dispatch: fan tiles out to endpoints and composite the results."""

import asyncio
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional

from .compositor import FramebufferCompositor
from .config import PAYLOAD_KEYS, Settings
from .errors import ConfigurationError, RenderInProgressError, TileError
from .models import TileJob, TileStatus
from .pixels import decode, paint_error_tile
from .pool import EndpointPool
from .progress import ProgressTracker
from .transport import TileTransport, get_transport

log = logging.getLogger(__name__)


class RenderPass:
    """Jobs, framebuffer and completion tasks of one render pass."""

    def __init__(
        self,
        pass_id: str,
        scene: str,
        compositor: FramebufferCompositor,
        progress: ProgressTracker,
    ):
        self.pass_id = pass_id
        self.scene = scene
        self.compositor = compositor
        self.progress = progress
        self.jobs: List[TileJob] = []
        self._tasks: List[asyncio.Task] = []

    @property
    def grid_size(self) -> int:
        return self.compositor.grid_size

    @property
    def tile_size(self) -> int:
        return self.compositor.tile_size

    @property
    def done(self) -> bool:
        """True once every job's completion handler has run."""
        return all(task.done() for task in self._tasks)

    def add(self, job: TileJob, task: asyncio.Task) -> None:
        self.jobs.append(job)
        self._tasks.append(task)

    def failed_tiles(self) -> List[TileJob]:
        return [job for job in self.jobs if job.status == TileStatus.FAILED]

    def counts(self) -> Dict[str, int]:
        """Number of jobs per status."""
        result = {status.value: 0 for status in TileStatus}
        for job in self.jobs:
            result[job.status.value] += 1
        return result

    async def wait(self) -> None:
        """
        Wait for every job to reach a terminal state.

        If a completion handler raised, the first such error is re-raised
        once all other jobs have finished.
        """
        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        errors = [result for result in results if isinstance(result, BaseException)]
        if errors:
            raise errors[0]


class TileJobDispatcher:
    """
    Splits a render into tile jobs and farms them out round-robin.

    All jobs of a pass are sent without waiting on each other. Each
    completion decodes the returned RGB (or paints an error tile), writes it
    into the pass framebuffer and bumps the progress counters exactly once.
    Only one pass may be active at a time.

    max_in_flight=0 adds no cap of its own, but sends still run on a thread
    pool of http_workers threads, so at most that many requests are open at
    once. A job counts towards progress.total when it is dispatched, even if
    it is still waiting on the semaphore or the thread pool.

    A pass whose image would exceed max_image_size pixels on a side is
    rejected before anything is allocated or sent.
    """

    def __init__(
        self,
        pool: EndpointPool,
        transport: TileTransport,
        progress: Optional[ProgressTracker] = None,
        payload_key: str = "data",
        max_in_flight: int = 0,
        executor: Optional[ThreadPoolExecutor] = None,
        http_workers: int = 32,
        max_image_size: int = 8192,
    ):
        if payload_key not in PAYLOAD_KEYS:
            raise ConfigurationError(
                f"payload_key must be one of {PAYLOAD_KEYS}, got {payload_key!r}"
            )
        if max_in_flight < 0:
            raise ConfigurationError(f"max_in_flight must be >= 0, got {max_in_flight}")
        if max_image_size < 1:
            raise ConfigurationError(f"max_image_size must be >= 1, got {max_image_size}")

        self.pool = pool
        self.transport = transport
        self.progress = progress or ProgressTracker()
        self.payload_key = payload_key
        self.max_in_flight = max_in_flight
        self.max_image_size = max_image_size
        self._owns_executor = executor is None
        # Thread pool executor for blocking I/O (transport.fetch_tile calls)
        self._executor = executor or ThreadPoolExecutor(max_workers=http_workers)
        self._current: Optional[RenderPass] = None

    @property
    def current_pass(self) -> Optional[RenderPass]:
        return self._current

    def start(self, scene: str, grid_size: int, tile_size: int) -> RenderPass:
        """
        Dispatch every tile of a new pass and return without waiting.

        Must be called from a running event loop.

        Raises:
            ConfigurationError: for non-positive grid or tile sizes, or an image
                larger than max_image_size on a side
            RenderInProgressError: if the previous pass still has jobs in flight
        """
        if (
            isinstance(grid_size, int)
            and isinstance(tile_size, int)
            and grid_size * tile_size > self.max_image_size
        ):
            raise ConfigurationError(
                f"Image of {grid_size}x{tile_size}px tiles is {grid_size * tile_size}px "
                f"on a side, above the {self.max_image_size}px limit"
            )
        compositor = FramebufferCompositor(grid_size, tile_size)
        if self._current is not None and not self._current.done:
            raise RenderInProgressError(
                f"Render pass {self._current.pass_id} is still running"
            )

        loop = asyncio.get_running_loop()
        semaphore = asyncio.Semaphore(self.max_in_flight) if self.max_in_flight else None
        render_pass = RenderPass(uuid.uuid4().hex, scene, compositor, self.progress)

        self.progress.reset()
        self._current = render_pass

        # Row-major: one row of tiles at a time
        for y in range(grid_size):
            for x in range(grid_size):
                job = TileJob(x=x, y=y, tile_size=tile_size, payload=scene)
                job.mark_in_flight(self.pool.next())
                self.progress.note_dispatch()
                task = loop.create_task(self._run_job(render_pass, job, semaphore))
                render_pass.add(job, task)

        log.info(
            f"Dispatched render pass {render_pass.pass_id}: {len(render_pass.jobs)} tiles "
            f"of {tile_size}px across {len(self.pool)} endpoint(s)"
        )
        return render_pass

    async def render(self, scene: str, grid_size: int, tile_size: int) -> RenderPass:
        """Run a full render pass and return it once every tile is terminal."""
        render_pass = self.start(scene, grid_size, tile_size)
        await render_pass.wait()
        return render_pass

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False)

    async def _send(self, job: TileJob) -> bytes:
        loop = asyncio.get_running_loop()
        body = job.request_body(self.payload_key)
        return await loop.run_in_executor(
            self._executor, self.transport.fetch_tile, job.assigned_endpoint, body
        )

    async def _fetch(self, job: TileJob, semaphore: Optional[asyncio.Semaphore]) -> bytes:
        if semaphore is None:
            return await self._send(job)
        async with semaphore:
            return await self._send(job)

    async def _run_job(
        self,
        render_pass: RenderPass,
        job: TileJob,
        semaphore: Optional[asyncio.Semaphore],
    ) -> None:
        start_time = time.time()
        try:
            error = None
            try:
                raw = await self._fetch(job, semaphore)
                pixels = decode(raw, job.tile_size)
            except TileError as e:
                error = str(e)
            except Exception as e:
                # Transports other than ours may raise anything on network failure
                error = f"{type(e).__name__}: {e}"

            duration_ms = int((time.time() - start_time) * 1000)
            try:
                if error is None:
                    render_pass.compositor.place(pixels, job.x, job.y, job.tile_size)
                    job.mark_completed()
                    log.debug(
                        f"Tile ({job.x}, {job.y}) from {job.assigned_endpoint} in {duration_ms}ms"
                    )
                else:
                    render_pass.compositor.place(
                        paint_error_tile(job.tile_size), job.x, job.y, job.tile_size
                    )
                    job.mark_failed(error)
                    log.warning(
                        f"Tile ({job.x}, {job.y}) failed on {job.assigned_endpoint} "
                        f"after {duration_ms}ms: {error}"
                    )
            except Exception as e:
                # The job still ends terminal; the error goes up through RenderPass.wait()
                if job.status == TileStatus.IN_FLIGHT:
                    job.mark_failed(f"{type(e).__name__}: {e}")
                log.error(f"Tile ({job.x}, {job.y}) could not be composited: {e}")
                raise
        finally:
            status = render_pass.progress.note_completion()

        if render_pass.progress.finished:
            failed = len(render_pass.failed_tiles())
            log.info(f"Render pass {render_pass.pass_id}: {status}, {failed} failed tile(s)")


MOCK_ENDPOINT = "mock://local"


def build_dispatcher(settings: Settings) -> TileJobDispatcher:
    """Build a dispatcher from Settings, choosing the transport they name."""
    endpoints = settings.endpoints
    if not endpoints and settings.transport == "mock":
        endpoints = [MOCK_ENDPOINT]
    return TileJobDispatcher(
        pool=EndpointPool(endpoints),
        transport=get_transport(settings),
        payload_key=settings.payload_key,
        max_in_flight=settings.max_in_flight,
        http_workers=settings.http_workers,
        max_image_size=settings.max_image_size,
    )
