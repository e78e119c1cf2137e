import threading
import time

import cv2
import numpy as np


def make_image_bytes(width, height, ext=".jpg", quality=90, noise=True, channels=3, seed=0):
    rng = np.random.default_rng(seed)
    if noise:
        img = rng.integers(0, 256, size=(height, width, channels), dtype=np.uint8)
    else:
        gradient = np.linspace(0, 255, width, dtype=np.uint8)
        img = np.repeat(np.tile(gradient, (height, 1))[:, :, None], channels, axis=2)
    params = [cv2.IMWRITE_JPEG_QUALITY, quality] if ext == ".jpg" else []
    ok, buf = cv2.imencode(ext, img, params)
    assert ok
    return buf.tobytes()


def decoded_size(data):
    img = cv2.imdecode(np.frombuffer(data, dtype=np.uint8), cv2.IMREAD_COLOR)
    h, w = img.shape[:2]
    return w, h


class FakeCodec:
    """Codec stand-in whose output size is a function of quality.

    Main-output calls return size_for(quality) bytes; thumbnail calls
    (any bounding box other than main_box) return thumb_size bytes.
    """

    def __init__(self, size_for=lambda q: q * 10, thumb_size=64, main_box=(1920, 1080), delay=0.0, fail_on=None):
        self.size_for = size_for
        self.thumb_size = thumb_size
        self.main_box = main_box
        self.delay = delay
        self.fail_on = fail_on
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def probe(self, source):
        return 1, 1

    @property
    def main_qualities(self):
        return [q for (_, box, q) in self.calls if box == self.main_box]

    def encode(self, source, bounding_box, quality):
        from imageopt.errors import CodecError

        with self._lock:
            self.calls.append((source, tuple(bounding_box), quality))
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.fail_on is not None and self.fail_on in source:
                raise CodecError("Unsupported or corrupt image data")
            if self.delay:
                time.sleep(self.delay(source) if callable(self.delay) else self.delay)
            if tuple(bounding_box) == self.main_box:
                return b"m" * self.size_for(quality)
            return b"t" * self.thumb_size
        finally:
            with self._lock:
                self.active -= 1


class RecordingStorage:
    def __init__(self):
        self.saved = []
        self._lock = threading.Lock()

    def save(self, data, name, kind):
        with self._lock:
            self.saved.append((kind, name, len(data)))
        return f"mem://{kind}/{name}"
