from fastapi import APIRouter, Depends, Query
from typing import List, Optional
import logging

from app.dependencies.dependencies import get_photo_service, get_s3_service
from app.storage.s3 import S3Service
from app.photo_service.service import PhotoService
from app.photo_service.models import (
    PhotoRecord,
    UploadPhotoRequest,
    RatePhotoRequest,
    LikeResponse,
    RateResponse,
    DeleteResponse,
    DownloadResponse,
)

log = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/photos",
    tags=["photos"]
)

@router.get("", response_model=List[PhotoRecord])
def list_photos(photos: PhotoService = Depends(get_photo_service)):
    """Lists all photos, newest first."""
    return photos.list_photos()

@router.post("", response_model=PhotoRecord, status_code=201)
def upload_photo(
    body: UploadPhotoRequest,
    photos: PhotoService = Depends(get_photo_service)
):
    """Uploads a base64 encoded image and creates its metadata record."""
    return photos.upload_photo(
        title=body.title,
        caption=body.caption,
        location=body.location,
        tags=body.tags,
        image_data=body.image_data,
        file_name=body.file_name,
    )

@router.get("/{photo_id}", response_model=PhotoRecord)
def get_photo(photo_id: str, photos: PhotoService = Depends(get_photo_service)):
    """Gets photo metadata."""
    return photos.get_photo(photo_id)

@router.delete("/{photo_id}", response_model=DeleteResponse)
def delete_photo(photo_id: str, photos: PhotoService = Depends(get_photo_service)):
    """Deletes a photo and its metadata."""
    result = photos.delete_photo(photo_id)
    return DeleteResponse(message=result["message"], photo_id=result["photoId"])

@router.post("/{photo_id}/like", response_model=LikeResponse)
def like_photo(photo_id: str, photos: PhotoService = Depends(get_photo_service)):
    likes = photos.like_photo(photo_id)
    return LikeResponse(likes=likes)

@router.post("/{photo_id}/rate", response_model=RateResponse)
def rate_photo(
    photo_id: str,
    body: Optional[RatePhotoRequest] = None,
    photos: PhotoService = Depends(get_photo_service)
):
    """Folds a 1-5 rating into the photo's running average."""
    rating, rating_count = photos.rate_photo(photo_id, body.rating if body else None)
    return RateResponse(rating=rating, rating_count=rating_count)

@router.get("/{photo_id}/download", response_model=DownloadResponse)
def get_download_url(
    photo_id: str,
    expires_in: Optional[int] = Query(None, ge=60, le=604800, description="Expiration time in seconds"),
    photos: PhotoService = Depends(get_photo_service),
    s3: S3Service = Depends(get_s3_service)
):
    """
    Generates a fresh presigned URL for the photo's image.

    Stored URLs may carry an expired token; this one is valid for expires_in
    seconds (default PRESIGN_EXPIRE_SECONDS).
    """
    url = photos.download_url(photo_id, expires_in=expires_in)
    return DownloadResponse(
        photo_id=photo_id,
        download_url=url,
        expires_in=expires_in or s3.settings.presign_expire_seconds,
    )
