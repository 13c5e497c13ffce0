from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
import uvicorn
import logging

from app.storage.s3 import S3Service
from app.photo_service.repository import MetadataRepository
from app.photo_service.service import PhotoService
from app.settings import settings
from app.routers.photos import router as photos_router
from app.exceptions import add_exception_handlers

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
log = logging.getLogger("photoshare")

def build_photo_service(s3: S3Service) -> PhotoService:
    repository = MetadataRepository(
        s3,
        bucket=settings.metadata_bucket,
        serialize_mutations=settings.serialize_mutations,
    )
    return PhotoService(s3, repository, photos_bucket=settings.photos_bucket)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
        Async context manager for FastAPI application lifecycle events.
        Creates the S3 client once, makes sure both buckets exist and
        wires the photo service used by every request.
    """
    # Initialize resources
    app.state.s3 = S3Service(settings)
    app.state.s3.ensure_bucket(settings.photos_bucket)
    app.state.s3.ensure_bucket(settings.metadata_bucket)
    app.state.photos = build_photo_service(app.state.s3)
    log.info("PhotoShare started on port %s, storage %s", settings.port, settings.aws_endpoint_url or settings.aws_region)
    yield
    # Cleanup resources
    app.state.s3.close()

# Initialize App
app = FastAPI(
    title=settings.app_title,
    lifespan=lifespan,
    description="Photo sharing service backed by S3",
)

# Add exception handlers
add_exception_handlers(app)

# CORS - Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=['*'],
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.middleware("http")
async def log_requests(request: Request, call_next):
    log.info("%s %s", request.method, request.url.path)
    return await call_next(request)

# Add the routers
app.include_router(photos_router)

# Check Health
@app.get("/health")
def health():
    """
        Liveness check
    """
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "port": settings.port,
        "storage": settings.aws_endpoint_url or f"s3.{settings.aws_region}",
    }

# Default page, registered last so it never shadows the API
@app.get("/{full_path:path}", include_in_schema=False)
def static_page(full_path: str):
    """Serves a file from the static directory, falling back to index.html."""
    root = Path(settings.static_dir).resolve()
    candidate = (root / full_path).resolve()
    if full_path and candidate.is_file() and candidate.is_relative_to(root):
        return FileResponse(candidate)
    index = root / "index.html"
    if index.is_file():
        return FileResponse(index)
    raise HTTPException(status_code=404, detail="Not Found")

if __name__ == "__main__":
    uvicorn.run("app.main:app", host=settings.host, port=settings.port)
