"""
    Centralized exception handling for the FastAPI application.
"""
from fastapi import Request, HTTPException
from fastapi.responses import JSONResponse
import logging

log = logging.getLogger(__name__)

class APIException(Exception):
    """Base class for API exceptions."""
    def __init__(self, status_code: int, detail: str):
        self.status_code = status_code
        self.detail = detail
        super().__init__(self.detail)

class PhotoNotFoundException(APIException):
    """Exception for when a photo has no metadata object."""
    def __init__(self, photo_id: str):
        self.photo_id = photo_id
        super().__init__(status_code=404, detail=f"Photo with ID '{photo_id}' not found.")

class PhotoValidationException(APIException):
    """Exception for missing or invalid request input."""
    def __init__(self, detail: str):
        super().__init__(status_code=400, detail=detail)

class MalformedRecordException(APIException):
    """Exception for stored metadata that cannot be decoded."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

class StorageException(APIException):
    """Exception for object storage failures."""
    def __init__(self, detail: str):
        super().__init__(status_code=500, detail=detail)

async def api_exception_handler(request: Request, exc: APIException):
    """
        Handles API exceptions.
        Client errors are logged as one-line warnings; storage and record
        failures are logged with their traceback.
    """
    path = request.scope.get("path", "")
    if exc.status_code < 500:
        log.warning("%s %s -> %d: %s", request.scope.get("method", ""), path, exc.status_code, exc.detail)
    else:
        log.error(f"{type(exc).__name__} on {path}: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def http_exception_handler(request: Request, exc: HTTPException):
    """Handles FastAPI HTTP exceptions."""
    log.error(f"HTTP Exception: {exc.detail}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
    )

async def generic_exception_handler(request: Request, exc: Exception):
    """Handles all other exceptions."""
    log.error(f"Unhandled Exception: {str(exc)}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": "An unexpected error occurred."},
    )

def add_exception_handlers(app):
    """Adds exception handlers to the FastAPI app."""
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
