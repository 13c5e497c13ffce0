from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote, urlsplit
import base64
import binascii
import logging
import numbers
import re
from botocore.exceptions import BotoCoreError, ClientError

from app.storage.s3 import S3Service
from app.photo_service.models import PhotoRecord, new_photo_id, utc_now
from app.photo_service.repository import MetadataRepository
from app.exceptions import PhotoValidationException, StorageException

log = logging.getLogger(__name__)

DATA_URI_MARKER = "base64,"
MIN_RATING = 1
MAX_RATING = 5

CONTENT_TYPES = {
    ".png": "image/png",
    ".gif": "image/gif",
}
DEFAULT_CONTENT_TYPE = "image/jpeg"

def sanitize_file_name(file_name: str) -> str:
    """Replaces every character outside [A-Za-z0-9.-] with an underscore."""
    return re.sub(r"[^A-Za-z0-9.-]", "_", file_name)

def content_type_for(file_name: str) -> str:
    for ext, content_type in CONTENT_TYPES.items():
        if file_name.lower().endswith(ext):
            return content_type
    return DEFAULT_CONTENT_TYPE

def decode_image_data(image_data: str) -> bytes:
    """Decodes a base64 payload, with or without a data URI prefix."""
    if DATA_URI_MARKER in image_data:
        image_data = image_data.split(DATA_URI_MARKER, 1)[1]
    try:
        data = base64.b64decode(image_data, validate=True)
    except (binascii.Error, ValueError):
        raise PhotoValidationException("imageData is not valid base64")
    if not data:
        raise PhotoValidationException("imageData is empty")
    return data

def image_key_from_url(url: str) -> str:
    """Last path segment of the image URL, without query string or token."""
    path = urlsplit(url).path
    return unquote(path.rsplit("/", 1)[-1])

def _sort_key(record: PhotoRecord) -> datetime:
    uploaded_at = record.uploaded_at
    if uploaded_at.tzinfo is None:
        uploaded_at = uploaded_at.replace(tzinfo=timezone.utc)
    return uploaded_at

class PhotoService:
    """Photo operations composed from the metadata repository and S3."""

    def __init__(self, s3: S3Service, repository: MetadataRepository, photos_bucket: str):
        self.s3 = s3
        self.repository = repository
        self.photos_bucket = photos_bucket

    def list_photos(self) -> List[PhotoRecord]:
        """Lists all photos, newest first."""
        photos = self.repository.list_all()
        photos.sort(key=_sort_key, reverse=True)
        log.info("Found %d photos", len(photos))
        return photos

    def get_photo(self, photo_id: str) -> PhotoRecord:
        return self.repository.get(photo_id)

    def upload_photo(
        self,
        title: Optional[str],
        caption: Optional[str],
        location: Optional[str],
        tags: Optional[str],
        image_data: Optional[str],
        file_name: Optional[str],
    ) -> PhotoRecord:
        """Stores the image in S3, then its metadata record."""
        for field, value in (("title", title), ("imageData", image_data), ("fileName", file_name)):
            if not value:
                raise PhotoValidationException(f"Missing required field: {field}")
        for field, value in (("caption", caption), ("location", location), ("tags", tags),
                             ("title", title), ("imageData", image_data), ("fileName", file_name)):
            if value is not None and not isinstance(value, str):
                raise PhotoValidationException(f"Field {field} must be a string")

        photo_id = new_photo_id()
        safe_name = sanitize_file_name(file_name)
        data = decode_image_data(image_data)
        content_type = content_type_for(safe_name)
        key = f"{photo_id}-{safe_name}"

        try:
            self.s3.upload(self.photos_bucket, key, data, content_type)
            url = self.s3.object_url(self.photos_bucket, key)
        except (BotoCoreError, ClientError) as e:
            log.error(f"S3 upload failed: {e}")
            raise StorageException(f"Failed to upload image: {e}")

        record = PhotoRecord(
            id=photo_id,
            title=title,
            caption=caption or "",
            location=location or "",
            tags=tags or "",
            url=url,
            file_name=safe_name,
            likes=0,
            comments=[],
            rating=0,
            rating_count=0,
            uploaded_at=utc_now(),
        )
        try:
            self.repository.put(record)
        except StorageException:
            log.warning("Image s3://%s/%s left without metadata", self.photos_bucket, key)
            raise

        log.info("Uploaded photo %s", photo_id)
        return record

    def delete_photo(self, photo_id: str) -> Dict[str, str]:
        """Deletes a photo; the image delete is best-effort, the metadata delete is not."""
        record = self.repository.get(photo_id)

        key = image_key_from_url(record.url)
        if key:
            try:
                self.s3.delete(self.photos_bucket, key)
            except (BotoCoreError, ClientError) as e:
                log.warning(f"Failed to delete image {key} for photo {photo_id}: {e}")
        else:
            log.warning("Photo %s has no image URL, skipping image delete", photo_id)

        self.repository.delete(photo_id)
        log.info("Deleted photo %s", photo_id)
        return {"message": "Photo deleted successfully", "photoId": photo_id}

    def like_photo(self, photo_id: str) -> int:
        record = self.repository.apply_mutation(
            photo_id,
            lambda r: r.model_copy(update={"likes": r.likes + 1}),
        )
        log.info("Photo liked: %s (total likes: %d)", photo_id, record.likes)
        return record.likes

    def rate_photo(self, photo_id: str, rating: Any) -> Tuple[float, int]:
        if (
            isinstance(rating, bool)
            or not isinstance(rating, numbers.Real)
            or not MIN_RATING <= rating <= MAX_RATING
        ):
            raise PhotoValidationException(f"Rating must be between {MIN_RATING} and {MAX_RATING}")

        def fold(r: PhotoRecord) -> PhotoRecord:
            count = r.rating_count + 1
            return r.model_copy(update={
                "rating": (r.rating * r.rating_count + rating) / count,
                "rating_count": count,
            })

        record = self.repository.apply_mutation(photo_id, fold)
        log.info("Photo rated: %s (avg: %.2f)", photo_id, record.rating)
        return record.rating, record.rating_count

    def download_url(self, photo_id: str, expires_in: Optional[int] = None) -> str:
        """Fresh presigned URL for the image of an existing photo."""
        record = self.repository.get(photo_id)
        key = image_key_from_url(record.url) or f"{photo_id}-{record.file_name}"
        try:
            return self.s3.generate_presigned_url(self.photos_bucket, key, expires_in=expires_in)
        except (BotoCoreError, ClientError) as e:
            log.error(f"Failed to generate presigned URL: {e}")
            raise StorageException(f"Failed to generate download URL: {e}")
