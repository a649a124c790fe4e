"""Entry point for the MediaGrid upload server."""

import uvicorn
import time
import uuid
from datetime import datetime, timezone
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from common.logging_config import setup_logging
from server import config
from server.routes.file_routes import router as file_router
from server.routes.upload_routes import router as upload_router
from server.exceptions import (
    MediaGridException,
    InvalidRequestError,
    InvalidPathError,
    PathNotFoundError,
    PathConflictError,
    ChunkTooLargeError,
    ChunkWriteError,
    ReassemblyError,
    FileOperationError
)

logger = setup_logging('server')

app = FastAPI(
    title="MediaGrid Server",
    description="Local file browser and resumable chunked upload server",
    version="1.0.0"
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """
    Middleware to log all HTTP requests and responses.
    """
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
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
    Make sure the uploads root exists before serving requests.
    """
    root = config.get_uploads_root()
    logger.info(f"MediaGrid server starting up, upload directory: {root}")


def _error_response(request: Request, exc: Exception, status_code: int, code: str,
                     log_as_error: bool = False) -> JSONResponse:
    request_id = getattr(request.state, 'request_id', 'unknown')
    message = f"{type(exc).__name__}: {exc} [request_id={request_id}] path={request.url.path}"
    if log_as_error:
        logger.error(message, exc_info=True)
    else:
        logger.warning(message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "code": code}
    )


@app.exception_handler(InvalidRequestError)
async def invalid_request_handler(request: Request, exc: InvalidRequestError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_REQUEST")


@app.exception_handler(InvalidPathError)
async def invalid_path_handler(request: Request, exc: InvalidPathError):
    return _error_response(request, exc, status.HTTP_400_BAD_REQUEST, "INVALID_PATH")


@app.exception_handler(PathNotFoundError)
async def path_not_found_handler(request: Request, exc: PathNotFoundError):
    return _error_response(request, exc, status.HTTP_404_NOT_FOUND, "NOT_FOUND")


@app.exception_handler(PathConflictError)
async def path_conflict_handler(request: Request, exc: PathConflictError):
    return _error_response(request, exc, status.HTTP_409_CONFLICT, "PATH_CONFLICT")


@app.exception_handler(ChunkTooLargeError)
async def chunk_too_large_handler(request: Request, exc: ChunkTooLargeError):
    return _error_response(request, exc, status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, "CHUNK_TOO_LARGE")


@app.exception_handler(ChunkWriteError)
async def chunk_write_handler(request: Request, exc: ChunkWriteError):
    return _error_response(
        request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "CHUNK_WRITE_FAILED", log_as_error=True
    )


@app.exception_handler(ReassemblyError)
async def reassembly_handler(request: Request, exc: ReassemblyError):
    return _error_response(
        request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "REASSEMBLY_FAILED", log_as_error=True
    )


@app.exception_handler(FileOperationError)
async def file_operation_handler(request: Request, exc: FileOperationError):
    return _error_response(
        request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "FILE_OPERATION_FAILED", log_as_error=True
    )


@app.exception_handler(MediaGridException)
async def mediagrid_exception_handler(request: Request, exc: MediaGridException):
    return _error_response(
        request, exc, status.HTTP_500_INTERNAL_SERVER_ERROR, "INTERNAL_ERROR", log_as_error=True
    )


app.include_router(upload_router)
app.include_router(file_router)


@app.get("/")
async def root():
    """
    Root endpoint for health check.
    """
    return {"message": "MediaGrid Server API", "status": "running"}


@app.get("/api/health")
async def health_check():
    """
    Health check endpoint.
    Returns 200 if service is alive.
    """
    return {"status": "OK", "timestamp": datetime.now(timezone.utc).isoformat()}


def main() -> None:
    """
    Start the FastAPI server with uvicorn.
    """
    uvicorn.run(
        "server.main:app",
        host=config.SERVER_HOST,
        port=config.SERVER_PORT,
    )


if __name__ == "__main__":
    main()
