import logging
import time
from typing import Optional, Protocol, Tuple

from .errors import CodecError
from .models import OptimizationResult, OptimizationTarget, UploadedImage

logger = logging.getLogger(__name__)


class Codec(Protocol):
    def encode(self, source: bytes, bounding_box: Tuple[int, int], quality: int) -> bytes:
        ...

    def probe(self, source: bytes) -> Tuple[int, int]:
        ...


def compression_ratio(optimized_size: int, original_size: int) -> float:
    return round(optimized_size / original_size * 100, 2)


def converge(source: bytes, target: OptimizationTarget, codec: Codec) -> Tuple[bytes, Optional[int]]:
    """Step JPEG quality down from target.initial_quality until the output fits max_bytes.

    Every attempt re-encodes the original source, not the previous attempt.
    The loop gives up once quality drops to the floor and keeps whatever the
    last attempt produced, so the result may still exceed the budget. Returns
    the buffer and the quality that produced it (None if the source already fit).
    """
    quality = target.initial_quality
    buffer = source
    last_quality = None
    while len(buffer) > target.max_bytes and quality > target.quality_floor:
        buffer = codec.encode(source, target.max_dimensions, quality)
        logger.debug("quality=%d -> %d bytes (budget %d)", quality, len(buffer), target.max_bytes)
        last_quality = quality
        quality -= target.quality_step
    return buffer, last_quality


def make_thumbnail(source: bytes, target: OptimizationTarget, codec: Codec) -> bytes:
    return codec.encode(source, target.thumbnail_dimensions, target.thumbnail_quality)


def optimize_image(image: UploadedImage, target: OptimizationTarget, codec: Codec) -> OptimizationResult:
    start = time.perf_counter()
    source = image.content
    original_size = image.size_bytes
    if not source or original_size <= 0:
        raise CodecError(f"{image.original_name}: empty upload")
    if logger.isEnabledFor(logging.DEBUG):
        width, height = codec.probe(source)
        logger.debug("%s: %dx%d source, %d bytes", image.original_name, width, height, original_size)

    optimized, final_quality = converge(source, target, codec)
    thumbnail = make_thumbnail(source, target, codec)
    elapsed = time.perf_counter() - start

    if len(optimized) > target.max_bytes:
        logger.info(
            "%s: %d bytes still over budget %d at quality %s",
            image.original_name, len(optimized), target.max_bytes, final_quality,
        )
    logger.info(
        "Optimized %s: %d -> %d bytes, thumbnail %d bytes in %.2fs",
        image.original_name, original_size, len(optimized), len(thumbnail), elapsed,
    )

    return OptimizationResult(
        original_name=image.original_name,
        optimized_bytes=optimized,
        thumbnail_bytes=thumbnail,
        original_size=original_size,
        optimized_size=len(optimized),
        thumbnail_size=len(thumbnail),
        compression_ratio=compression_ratio(len(optimized), original_size),
        processing_time=elapsed,
        final_quality=final_quality,
    )
