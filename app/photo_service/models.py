from typing import Any, List, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
import threading
import time

_id_lock = threading.Lock()
_last_id = 0

def new_photo_id() -> str:
    """Generates a time-derived photo ID (epoch milliseconds).

    IDs are strictly increasing within a process: a second call in the same
    millisecond is bumped to the next free value.
    """
    global _last_id
    with _id_lock:
        candidate = time.time_ns() // 1_000_000
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
    return str(candidate)

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class PhotoRecord(CamelModel):
    id: str
    title: str = ""
    caption: str = ""
    location: str = ""
    tags: str = ""
    url: str = ""
    file_name: str = ""
    likes: int = Field(ge=0)
    comments: List[Any] = []
    rating: float = Field(ge=0, le=5)
    rating_count: int = Field(ge=0)
    uploaded_at: datetime

class UploadPhotoRequest(CamelModel):
    # Presence and type are checked by the service so that bad input maps to 400, not 422
    title: Any = None
    caption: Any = None
    location: Any = None
    tags: Any = None
    image_data: Any = None
    file_name: Any = None

class RatePhotoRequest(CamelModel):
    rating: Any = None

class LikeResponse(CamelModel):
    success: bool = True
    likes: int

class RateResponse(CamelModel):
    success: bool = True
    rating: float
    rating_count: int

class DeleteResponse(CamelModel):
    message: str
    photo_id: str

class DownloadResponse(CamelModel):
    photo_id: str
    download_url: str
    expires_in: Optional[int] = None
