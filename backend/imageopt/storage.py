import io
import logging
import os
from typing import Dict, Protocol

import cloudinary
import cloudinary.uploader

from .config import Settings

logger = logging.getLogger(__name__)

OPTIMIZED = "optimized"
THUMBNAIL = "thumbnail"

SUBDIRS = {OPTIMIZED: "optimized", THUMBNAIL: "thumbnails"}


class Storage(Protocol):
    def save(self, data: bytes, name: str, kind: str) -> str:
        ...


def _subdir(kind: str) -> str:
    try:
        return SUBDIRS[kind]
    except KeyError:
        raise ValueError(f"Unknown output kind {kind!r}") from None


class LocalStorage:
    """Writes outputs under root/optimized and root/thumbnails, served as static files."""

    def __init__(self, root: str):
        self.root = root

    def directory(self, kind: str) -> str:
        return os.path.join(self.root, _subdir(kind))

    def ensure_dirs(self) -> None:
        for kind in SUBDIRS:
            os.makedirs(self.directory(kind), exist_ok=True)

    def save(self, data: bytes, name: str, kind: str) -> str:
        folder = self.directory(kind)
        os.makedirs(folder, exist_ok=True)
        with open(os.path.join(folder, name), "wb") as f:
            f.write(data)
        return f"/{_subdir(kind)}/{name}"


def configure_cloudinary(settings: Settings) -> bool:
    cloud_name = os.getenv("CLOUDINARY_CLOUD_NAME") or settings.CLOUDINARY_CLOUD_NAME
    api_key = os.getenv("CLOUDINARY_API_KEY") or settings.CLOUDINARY_API_KEY
    api_secret = os.getenv("CLOUDINARY_API_SECRET") or settings.CLOUDINARY_API_SECRET
    if not (cloud_name and api_key and api_secret):
        return False
    cloudinary.config(
        cloud_name=cloud_name,
        api_key=api_key,
        api_secret=api_secret,
        secure=True,
    )
    return True


class CloudinaryStorage:
    def __init__(self, folder: str):
        self.folder = folder

    def upload(self, data: bytes, name: str, kind: str) -> Dict:
        public_id = os.path.splitext(name)[0]
        opts = {"resource_type": "image", "folder": f"{self.folder}/{_subdir(kind)}", "public_id": public_id}
        try:
            return cloudinary.uploader.upload(io.BytesIO(data), **opts)
        except Exception:
            logger.exception("Cloudinary upload failed for %s", name)
            raise

    def save(self, data: bytes, name: str, kind: str) -> str:
        resp = self.upload(data, name, kind)
        return resp.get("secure_url") or resp.get("url")


def build_storage(settings: Settings) -> Storage:
    if settings.STORAGE_BACKEND == "cloudinary":
        if configure_cloudinary(settings):
            return CloudinaryStorage(settings.CLOUDINARY_FOLDER)
        logger.warning("STORAGE_BACKEND=cloudinary but credentials are missing, using local storage")
    elif settings.STORAGE_BACKEND != "local":
        raise ValueError(f"Unknown storage backend {settings.STORAGE_BACKEND!r}")
    return LocalStorage(settings.OUTPUT_DIR)
