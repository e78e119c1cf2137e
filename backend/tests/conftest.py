import sys
from pathlib import Path

import pytest

# Ensure the project root (backend/) is on sys.path so tests can import the `imageopt` package.
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from helpers import make_image_bytes  # noqa: E402


@pytest.fixture
def noisy_jpeg():
    """A 1600x1200 noise JPEG, several hundred KB, far above the default budget."""
    return make_image_bytes(1600, 1200, ext=".jpg", quality=95)


@pytest.fixture
def small_png():
    """A small PNG that already fits the default 100KB budget."""
    return make_image_bytes(64, 48, ext=".png", noise=False)
