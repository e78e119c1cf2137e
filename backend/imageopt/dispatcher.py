import asyncio
import logging
import os
from concurrent.futures import Executor, ProcessPoolExecutor, ThreadPoolExecutor
from typing import List, Optional, Sequence

from .models import BatchJob, OptimizationResult, OptimizationTarget, UploadedImage
from .optimizer import Codec, optimize_image

logger = logging.getLogger(__name__)

POOL_KINDS = ("thread", "process")


def create_executor(kind: str = "thread", max_workers: Optional[int] = None) -> Executor:
    """Build the worker pool shared by every request for the life of the process."""
    workers = max_workers or os.cpu_count() or 1
    if kind == "thread":
        return ThreadPoolExecutor(max_workers=workers, thread_name_prefix="imageopt")
    if kind == "process":
        return ProcessPoolExecutor(max_workers=workers)
    raise ValueError(f"Unknown worker pool kind {kind!r}, expected one of {POOL_KINDS}")


class BatchDispatcher:
    """Runs the optimizer once per image on an injected executor.

    Submission only touches the executor's own queue, so one dispatcher can
    serve concurrent requests. A failing image fails the whole batch: the
    first exception propagates and results from sibling images that are
    still running are discarded when they finish.
    """

    def __init__(self, executor: Executor, codec: Codec):
        self.executor = executor
        self.codec = codec

    async def run_batch(self, images: Sequence[UploadedImage], target: OptimizationTarget) -> List[OptimizationResult]:
        return await self.run_job(BatchJob(images=tuple(images), target=target))

    async def run_job(self, job: BatchJob) -> List[OptimizationResult]:
        loop = asyncio.get_running_loop()
        logger.info("Dispatching %d image(s), budget %d bytes", len(job), job.target.max_bytes)
        futures = [
            loop.run_in_executor(self.executor, optimize_image, image, job.target, self.codec)
            for image in job.images
        ]
        return list(await asyncio.gather(*futures))
