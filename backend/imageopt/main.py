import logging
from typing import List, Optional

from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .codec import OpenCVCodec
from .config import Settings, settings as default_settings
from .dispatcher import BatchDispatcher, create_executor
from .errors import BatchTimeoutError, ProcessingError, ValidationError
from .models import BatchResponse, ErrorResponse, UploadedImage
from .optimizer import Codec
from .orchestrator import BatchOrchestrator
from .storage import OPTIMIZED, THUMBNAIL, LocalStorage, Storage, build_storage
from .utils import parse_target_size

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "The request took too long to process. Please try again with fewer or smaller images."
PROCESSING_MESSAGE = "An error occurred while optimizing images"


def create_app(settings: Optional[Settings] = None, codec: Optional[Codec] = None, storage: Optional[Storage] = None) -> FastAPI:
    settings = settings or default_settings
    codec = codec or OpenCVCodec()
    storage = storage or build_storage(settings)

    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

    app = FastAPI(
        title="Image Optimization API",
        version="1.0.0",
        description="Upload images, shrink each under a byte budget and get a thumbnail back",
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if isinstance(storage, LocalStorage):
        app.mount("/optimized", StaticFiles(directory=storage.directory(OPTIMIZED), check_dir=False), name="optimized")
        app.mount("/thumbnails", StaticFiles(directory=storage.directory(THUMBNAIL), check_dir=False), name="thumbnails")

    @app.on_event("startup")
    async def startup_event():
        if isinstance(storage, LocalStorage):
            storage.ensure_dirs()
        # one pool for the whole process, shared by every request
        app.state.executor = create_executor(settings.WORKER_POOL_KIND, settings.WORKER_POOL_SIZE)
        app.state.orchestrator = BatchOrchestrator(
            BatchDispatcher(app.state.executor, codec),
            storage,
            target=settings.optimization_target(),
            timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS,
        )
        logger.info("Worker pool started (%s, %s workers)", settings.WORKER_POOL_KIND, settings.WORKER_POOL_SIZE or "cpu count")

    @app.on_event("shutdown")
    async def shutdown_event():
        # let detached batches finish so their buffers are released normally
        app.state.executor.shutdown(wait=True)

    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        logger.warning("Rejected request: %s", exc)
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(BatchTimeoutError)
    async def timeout_error_handler(request: Request, exc: BatchTimeoutError):
        return JSONResponse(status_code=500, content={"error": TIMEOUT_MESSAGE})

    @app.exception_handler(ProcessingError)
    async def processing_error_handler(request: Request, exc: ProcessingError):
        return JSONResponse(status_code=500, content={"error": PROCESSING_MESSAGE, "details": exc.details})

    @app.post(
        "/optimize",
        response_model=BatchResponse,
        responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
        summary="Optimize images",
    )
    async def optimize(
        images: Optional[List[UploadFile]] = File(None),
        targetSize: Optional[str] = Form(None, description="Target size in bytes (default 100KB)"),
    ):
        uploads = []
        for file in images or []:
            contents = await file.read()
            uploads.append(UploadedImage.from_bytes(file.filename or "", contents))
        target_size = parse_target_size(targetSize, settings.DEFAULT_TARGET_SIZE)
        return await app.state.orchestrator.handle(uploads, target_size)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
