from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import OptimizationTarget


class Settings(BaseSettings):
    DEFAULT_TARGET_SIZE: int = 100 * 1024
    MAX_WIDTH: int = 1920
    MAX_HEIGHT: int = 1080
    THUMBNAIL_SIZE: int = 350
    THUMBNAIL_QUALITY: int = 20
    INITIAL_QUALITY: int = 80
    QUALITY_STEP: int = 5
    QUALITY_FLOOR: int = 10
    REQUEST_TIMEOUT_SECONDS: float = 60.0
    WORKER_POOL_SIZE: Optional[int] = None
    WORKER_POOL_KIND: str = "thread"
    STORAGE_BACKEND: str = "local"
    OUTPUT_DIR: str = "."
    CLOUDINARY_CLOUD_NAME: str | None = None
    CLOUDINARY_API_KEY: str | None = None
    CLOUDINARY_API_SECRET: str | None = None
    CLOUDINARY_FOLDER: str = "imageopt"
    ALLOWED_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def optimization_target(self, max_bytes: int | None = None) -> OptimizationTarget:
        return OptimizationTarget(
            max_bytes=max_bytes or self.DEFAULT_TARGET_SIZE,
            max_dimensions=(self.MAX_WIDTH, self.MAX_HEIGHT),
            thumbnail_dimensions=(self.THUMBNAIL_SIZE, self.THUMBNAIL_SIZE),
            thumbnail_quality=self.THUMBNAIL_QUALITY,
            initial_quality=self.INITIAL_QUALITY,
            quality_step=self.QUALITY_STEP,
            quality_floor=self.QUALITY_FLOOR,
        )


settings = Settings()
