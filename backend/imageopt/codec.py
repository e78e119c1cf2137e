import logging
from typing import Tuple

import cv2
import numpy as np

from .errors import CodecError

logger = logging.getLogger(__name__)


def fit_inside(width: int, height: int, box: Tuple[int, int]) -> Tuple[int, int]:
    """Largest size with the same aspect ratio that fits in box, never larger than the source."""
    box_w, box_h = box
    scale = min(box_w / width, box_h / height, 1.0)
    if scale >= 1.0:
        return width, height
    return max(1, round(width * scale)), max(1, round(height * scale))


class OpenCVCodec:
    """Resize-to-fit and JPEG encode backed by OpenCV.

    Holds no state, so instances pickle cleanly into process pool workers.
    """

    def decode(self, source: bytes) -> np.ndarray:
        if not source:
            raise CodecError("Empty image data")
        buf = np.frombuffer(source, dtype=np.uint8)
        img = cv2.imdecode(buf, cv2.IMREAD_COLOR)
        if img is None:
            raise CodecError("Unsupported or corrupt image data")
        h, w = img.shape[:2]
        if w == 0 or h == 0:
            raise CodecError(f"Degenerate image dimensions {w}x{h}")
        return img

    def probe(self, source: bytes) -> Tuple[int, int]:
        h, w = self.decode(source).shape[:2]
        return w, h

    def encode(self, source: bytes, bounding_box: Tuple[int, int], quality: int) -> bytes:
        if not 1 <= quality <= 100:
            raise ValueError(f"quality must be between 1 and 100, got {quality}")
        if bounding_box[0] <= 0 or bounding_box[1] <= 0:
            raise CodecError(f"Degenerate bounding box {bounding_box[0]}x{bounding_box[1]}")

        img = self.decode(source)
        h, w = img.shape[:2]
        new_w, new_h = fit_inside(w, h, bounding_box)
        if (new_w, new_h) != (w, h):
            img = cv2.resize(img, (new_w, new_h), interpolation=cv2.INTER_AREA)

        ok, encoded = cv2.imencode(".jpg", img, [cv2.IMWRITE_JPEG_QUALITY, int(quality)])
        if not ok:
            raise CodecError("JPEG encoding failed")
        logger.debug("Encoded %dx%d -> %dx%d at quality %d (%d bytes)", w, h, new_w, new_h, quality, encoded.size)
        return encoded.tobytes()
