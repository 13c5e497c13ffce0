"""JSON codec for photo metadata objects."""
from pydantic import ValidationError

from app.photo_service.models import PhotoRecord
from app.exceptions import MalformedRecordException

def encode_record(record: PhotoRecord) -> bytes:
    """Serializes a record to UTF-8 JSON using the camelCase wire names."""
    return record.model_dump_json(by_alias=True).encode("utf-8")

def decode_record(data: bytes) -> PhotoRecord:
    """Parses a stored metadata object.

    Raises MalformedRecordException when the payload is not a JSON object or
    lacks a usable id, likes, rating, ratingCount or uploadedAt.
    """
    try:
        return PhotoRecord.model_validate_json(data)
    except ValidationError as e:
        raise MalformedRecordException(f"Malformed photo record: {e.error_count()} error(s): {e.errors()[0]['msg']}")
