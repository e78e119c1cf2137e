from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel


@dataclass(frozen=True)
class UploadedImage:
    original_name: str
    size_bytes: int
    content: bytes = field(repr=False)
    content_path: Optional[str] = None

    @classmethod
    def from_bytes(cls, original_name: str, content: bytes, content_path: Optional[str] = None) -> "UploadedImage":
        return cls(original_name=original_name, size_bytes=len(content), content=content, content_path=content_path)


@dataclass(frozen=True)
class OptimizationTarget:
    """Size budget and encoder settings shared by every image of a batch."""
    max_bytes: int = 100 * 1024
    max_dimensions: Tuple[int, int] = (1920, 1080)
    thumbnail_dimensions: Tuple[int, int] = (350, 350)
    thumbnail_quality: int = 20
    initial_quality: int = 80
    quality_step: int = 5
    quality_floor: int = 10


@dataclass(frozen=True)
class OptimizationResult:
    """
    Outcome of optimizing one image.

    final_quality is None when the source already fit the budget and was
    passed through without re-encoding.
    """
    original_name: str
    optimized_bytes: bytes = field(repr=False)
    thumbnail_bytes: bytes = field(repr=False)
    original_size: int
    optimized_size: int
    thumbnail_size: int
    compression_ratio: float
    processing_time: float
    final_quality: Optional[int] = None

    @property
    def reencoded(self) -> bool:
        return self.final_quality is not None


@dataclass(frozen=True)
class BatchJob:
    images: Tuple[UploadedImage, ...]
    target: OptimizationTarget

    def __len__(self) -> int:
        return len(self.images)


class ImageResult(BaseModel):
    originalName: str
    optimizedUrl: str
    thumbnailUrl: str
    originalSize: int
    optimizedSize: int
    thumbnailSize: int
    compressionRatio: str
    processingTime: str

    @classmethod
    def from_result(cls, result: OptimizationResult, optimized_url: str, thumbnail_url: str) -> "ImageResult":
        return cls(
            originalName=result.original_name,
            optimizedUrl=optimized_url,
            thumbnailUrl=thumbnail_url,
            originalSize=result.original_size,
            optimizedSize=result.optimized_size,
            thumbnailSize=result.thumbnail_size,
            compressionRatio=f"{result.compression_ratio:.2f}",
            processingTime=f"{result.processing_time:.2f}",
        )


class BatchResponse(BaseModel):
    message: str = "Images optimized successfully"
    results: List[ImageResult]
    totalProcessingTime: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None
