"""Entry point for the file share server."""

import time
import uuid

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from fileshare import service_locator
from fileshare.assembler import Assembler
from fileshare.chunk_store import ChunkStore
from fileshare.cleanup_task import SessionSweeper
from fileshare.config import get_settings
from fileshare.exceptions import (
    FileShareException,
    InvalidParamsError,
    UnknownSessionError,
    EmptyChunkError,
    IncompleteUploadError,
    MissingChunkError,
    AssemblyFailedError,
    OversizeChunkError,
    OversizeFileError,
    NoFileError,
    FileNotFoundError,
    NotFoundError,
    IsGroupError,
    ArtifactMissingError,
    DecompressionFailedError
)
from fileshare.metadata_store import MetadataStore
from fileshare.routes.file_routes import router as file_router
from fileshare.routes.group_routes import router as group_router
from fileshare.routes.upload_routes import router as upload_router
from fileshare.schemas.common import HealthResponse
from fileshare.services.group_service import GroupService
from fileshare.services.retrieval_service import RetrievalService
from fileshare.services.upload_service import UploadService
from fileshare.session_registry import UploadSessionRegistry

logger = setup_logging('fileshare')

app = FastAPI(
    title="File Share Server",
    description="Chunked file upload and share-code retrieval service",
    version="1.0.0"
)

sweeper = None


def error_response(status_code: int, exc: Exception, code: str, **extras) -> JSONResponse:
    content = {"success": False, "error": str(exc), "code": code}
    content.update(extras)
    return JSONResponse(status_code=status_code, content=content)


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', 'unknown')


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = str(uuid.uuid4())
    request.state.request_id = request_id

    start_time = time.time()

    logger.info(
        f"Request started: {request.method} {request.url.path} [request_id={request_id}]"
    )

    response = await call_next(request)

    duration = time.time() - start_time

    logger.info(
        f"Request completed: {request.method} {request.url.path} "
        f"status={response.status_code} duration={duration:.3f}s [request_id={request_id}]"
    )

    response.headers["X-Request-ID"] = request_id

    return response


@app.on_event("startup")
async def startup_event():
    """
    Load the record store, wire services and start the session sweeper.
    """
    global sweeper

    logger.info("File share server starting up...")

    settings = get_settings()

    chunk_store = ChunkStore(settings.chunks_dir)
    chunk_store.ensure_root()
    settings.uploads_dir.mkdir(parents=True, exist_ok=True)

    store = MetadataStore(settings.db_path)
    store.load()

    registry = UploadSessionRegistry(chunk_store, ttl_seconds=settings.session_ttl_seconds)
    assembler = Assembler(registry, chunk_store, store, settings.uploads_dir)

    service_locator.set_metadata_store(store)
    service_locator.set_session_registry(registry)
    service_locator.set_upload_service(
        UploadService(
            registry,
            assembler,
            store,
            settings.uploads_dir,
            max_file_bytes=settings.max_file_bytes,
            max_chunk_bytes=settings.max_chunk_bytes,
        )
    )
    service_locator.set_retrieval_service(
        RetrievalService(store, settings.uploads_dir, settings.decompression_fallback)
    )
    service_locator.set_group_service(GroupService(store))

    sweeper = SessionSweeper(registry, interval_seconds=settings.sweep_interval_seconds)
    await sweeper.start()

    logger.info(
        f"File share server ready: data_dir={settings.data_dir}, "
        f"decompression_fallback={settings.decompression_fallback}"
    )


@app.on_event("shutdown")
async def shutdown_event():
    """
    Stop background tasks and release services on application shutdown.
    """
    global sweeper

    logger.info("File share server shutting down...")

    if sweeper is not None:
        await sweeper.stop()
        sweeper = None

    service_locator.reset()


@app.exception_handler(InvalidParamsError)
async def invalid_params_handler(request: Request, exc: InvalidParamsError):
    logger.warning(f"Invalid parameters: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_400_BAD_REQUEST, exc, "INVALID_PARAMS")


@app.exception_handler(UnknownSessionError)
async def unknown_session_handler(request: Request, exc: UnknownSessionError):
    logger.warning(f"Unknown upload session: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_400_BAD_REQUEST, exc, "UNKNOWN_SESSION")


@app.exception_handler(EmptyChunkError)
async def empty_chunk_handler(request: Request, exc: EmptyChunkError):
    logger.warning(f"Empty chunk: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_400_BAD_REQUEST, exc, "EMPTY_CHUNK")


@app.exception_handler(IncompleteUploadError)
async def incomplete_upload_handler(request: Request, exc: IncompleteUploadError):
    logger.warning(f"Incomplete upload: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(
        status.HTTP_400_BAD_REQUEST, exc, "INCOMPLETE_UPLOAD",
        received=exc.received, expected=exc.expected
    )


@app.exception_handler(MissingChunkError)
async def missing_chunk_handler(request: Request, exc: MissingChunkError):
    logger.warning(f"Missing chunk: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_400_BAD_REQUEST, exc, "MISSING_CHUNK", chunkIndex=exc.index)


@app.exception_handler(AssemblyFailedError)
async def assembly_failed_handler(request: Request, exc: AssemblyFailedError):
    logger.error(
        f"Assembly failed: {exc} [request_id={_request_id(request)}] path={request.url.path}",
        exc_info=True
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "ASSEMBLY_FAILED")


@app.exception_handler(OversizeChunkError)
async def oversize_chunk_handler(request: Request, exc: OversizeChunkError):
    logger.warning(f"Chunk too large: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, exc, "CHUNK_TOO_LARGE", limit=exc.limit)


@app.exception_handler(OversizeFileError)
async def oversize_file_handler(request: Request, exc: OversizeFileError):
    logger.warning(f"File too large: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, exc, "FILE_TOO_LARGE", limit=exc.limit)


@app.exception_handler(NoFileError)
async def no_file_handler(request: Request, exc: NoFileError):
    logger.warning(f"No file uploaded [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_400_BAD_REQUEST, exc, "NO_FILE")


@app.exception_handler(FileNotFoundError)
async def file_not_found_handler(request: Request, exc: FileNotFoundError):
    logger.warning(f"File not found: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_404_NOT_FOUND, exc, "FILE_NOT_FOUND", fileId=exc.file_id)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning(f"Not found: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_404_NOT_FOUND, exc, "NOT_FOUND")


@app.exception_handler(IsGroupError)
async def is_group_handler(request: Request, exc: IsGroupError):
    logger.info(f"Group code used as file code: {exc.group_code} [request_id={_request_id(request)}]")
    return error_response(
        status.HTTP_400_BAD_REQUEST, exc, "IS_GROUP",
        isGroup=True, groupCode=exc.group_code, fileCount=exc.file_count
    )


@app.exception_handler(ArtifactMissingError)
async def artifact_missing_handler(request: Request, exc: ArtifactMissingError):
    logger.warning(f"Artifact missing: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_404_NOT_FOUND, exc, "ARTIFACT_MISSING")


@app.exception_handler(DecompressionFailedError)
async def decompression_failed_handler(request: Request, exc: DecompressionFailedError):
    logger.error(f"Decompression failed: {exc} [request_id={_request_id(request)}] path={request.url.path}")
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "DECOMPRESSION_FAILED")


@app.exception_handler(FileShareException)
async def fileshare_exception_handler(request: Request, exc: FileShareException):
    logger.error(
        f"File share exception: {exc} [request_id={_request_id(request)}] path={request.url.path}",
        exc_info=True
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, exc, "INTERNAL_ERROR")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled error: {exc} [request_id={_request_id(request)}] path={request.url.path}",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "error": "Internal server error", "code": "INTERNAL_ERROR"}
    )


app.include_router(upload_router)
app.include_router(file_router)
app.include_router(group_router)


@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """
    Health check endpoint for container healthchecks.
    """
    return HealthResponse(status="ok", message="Server is running")


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    settings = get_settings()
    uvicorn.run(
        "fileshare.main:app",
        host=settings.host,
        port=settings.port
    )


if __name__ == "__main__":
    main()
