import asyncio
import logging
import time
from dataclasses import replace
from typing import List, Optional, Sequence

from .dispatcher import BatchDispatcher
from .errors import BatchTimeoutError, ProcessingError, ValidationError
from .models import BatchResponse, ImageResult, OptimizationResult, OptimizationTarget, UploadedImage
from .storage import OPTIMIZED, THUMBNAIL, Storage
from .utils import output_names

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 60.0


class BatchOrchestrator:
    """Runs one request's batch against a wall-clock deadline.

    The deadline covers the whole batch, optimization and storage, not each
    image. When it expires the caller gets BatchTimeoutError straight away
    while the batch keeps running in the background: nothing is cancelled,
    the workers finish normally and whatever they produce is dropped.
    """

    def __init__(
        self,
        dispatcher: BatchDispatcher,
        storage: Storage,
        target: Optional[OptimizationTarget] = None,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        self.dispatcher = dispatcher
        self.storage = storage
        self.target = target or OptimizationTarget()
        self.timeout_seconds = timeout_seconds

    def target_for(self, target_size: Optional[int]) -> OptimizationTarget:
        if target_size:
            return replace(self.target, max_bytes=target_size)
        return self.target

    async def handle(self, images: Sequence[UploadedImage], target_size: Optional[int] = None) -> BatchResponse:
        if not images:
            raise ValidationError("No files uploaded")

        start = time.perf_counter()
        target = self.target_for(target_size)
        task = asyncio.ensure_future(self._process(images, target))
        # asyncio.wait leaves the task running when the deadline passes
        done, _ = await asyncio.wait({task}, timeout=self.timeout_seconds)
        if task not in done:
            task.add_done_callback(_log_abandoned)
            logger.warning("Batch of %d image(s) exceeded %.1fs deadline, detaching", len(images), self.timeout_seconds)
            raise BatchTimeoutError("Request timed out")
        try:
            results = task.result()
        except Exception as e:
            logger.exception("Error optimizing images")
            raise ProcessingError(str(e)) from e

        total = time.perf_counter() - start
        logger.info("Batch of %d image(s) finished in %.2fs", len(results), total)
        return BatchResponse(results=results, totalProcessingTime=f"{total:.2f}")

    async def _process(self, images: Sequence[UploadedImage], target: OptimizationTarget) -> List[ImageResult]:
        results = await self.dispatcher.run_batch(images, target)
        stored = []
        for result in results:
            stored.append(await self._store(result))
        return stored

    async def _store(self, result: OptimizationResult) -> ImageResult:
        optimized_name, thumbnail_name = output_names(result)
        optimized_url = await asyncio.to_thread(self.storage.save, result.optimized_bytes, optimized_name, OPTIMIZED)
        thumbnail_url = await asyncio.to_thread(self.storage.save, result.thumbnail_bytes, thumbnail_name, THUMBNAIL)
        return ImageResult.from_result(result, optimized_url, thumbnail_url)


def _log_abandoned(task: asyncio.Future) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.warning("Abandoned batch failed after its deadline: %s", exc)
    else:
        logger.info("Abandoned batch completed after its deadline, %d result(s) discarded", len(task.result()))
