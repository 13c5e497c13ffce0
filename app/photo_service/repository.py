from contextlib import contextmanager
from typing import Callable, Dict, List
import logging
import threading
from botocore.exceptions import BotoCoreError, ClientError

from app.storage.s3 import S3Service, is_not_found
from app.photo_service.models import PhotoRecord
from app.photo_service.codec import encode_record, decode_record
from app.exceptions import PhotoNotFoundException, MalformedRecordException, StorageException

log = logging.getLogger(__name__)

METADATA_SUFFIX = ".json"

def metadata_key(photo_id: str) -> str:
    return f"{photo_id}{METADATA_SUFFIX}"

class MetadataRepository:
    """
        Reads and writes photo metadata objects, one JSON object per photo.

        apply_mutation is a read-modify-write with no version check. When
        serialize_mutations is on, concurrent mutations of the same id inside
        this process run one at a time; otherwise the last put wins.
    """
    def __init__(self, s3: S3Service, bucket: str, serialize_mutations: bool = True):
        self.s3 = s3
        self.bucket = bucket
        self.serialize_mutations = serialize_mutations
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()

    def exists(self, photo_id: str) -> bool:
        try:
            return self.s3.exists(self.bucket, metadata_key(photo_id))
        except (BotoCoreError, ClientError) as e:
            log.error(f"S3 exists check failed for {photo_id}: {e}")
            raise StorageException(f"Failed to check photo metadata: {e}")

    def get(self, photo_id: str) -> PhotoRecord:
        try:
            data = self.s3.download(self.bucket, metadata_key(photo_id))
        except ClientError as e:
            if is_not_found(e):
                raise PhotoNotFoundException(photo_id)
            log.error(f"S3 download failed for {photo_id}: {e}")
            raise StorageException(f"Failed to read photo metadata: {e}")
        except BotoCoreError as e:
            log.error(f"S3 download failed for {photo_id}: {e}")
            raise StorageException(f"Failed to read photo metadata: {e}")
        return decode_record(data)

    def put(self, record: PhotoRecord):
        try:
            self.s3.upload(
                self.bucket,
                metadata_key(record.id),
                encode_record(record),
                "application/json",
            )
        except (BotoCoreError, ClientError) as e:
            log.error(f"S3 metadata upload failed for {record.id}: {e}")
            raise StorageException(f"Failed to save photo metadata: {e}")

    def delete(self, photo_id: str):
        try:
            self.s3.delete(self.bucket, metadata_key(photo_id))
        except (BotoCoreError, ClientError) as e:
            log.error(f"S3 metadata delete failed for {photo_id}: {e}")
            raise StorageException(f"Failed to delete photo metadata: {e}")

    def list_all(self) -> List[PhotoRecord]:
        """Loads every readable record; unreadable objects are logged and skipped."""
        try:
            keys = [k for k in self.s3.list_keys(self.bucket) if k.endswith(METADATA_SUFFIX)]
        except ClientError as e:
            if not is_not_found(e):
                log.error(f"S3 listing failed: {e}")
                raise StorageException(f"Failed to list photos: {e}")
            log.warning("Metadata bucket %s does not exist, creating it", self.bucket)
            try:
                self.s3.ensure_bucket(self.bucket)
            except (BotoCoreError, ClientError) as e:
                raise StorageException(f"Failed to create metadata bucket: {e}")
            return []
        except BotoCoreError as e:
            log.error(f"S3 listing failed: {e}")
            raise StorageException(f"Failed to list photos: {e}")

        records = []
        for key in keys:
            try:
                records.append(decode_record(self.s3.download(self.bucket, key)))
            except (MalformedRecordException, BotoCoreError, ClientError) as e:
                log.error("Skipping metadata object %s: %s", key, e)
        return records

    def apply_mutation(self, photo_id: str, fn: Callable[[PhotoRecord], PhotoRecord]) -> PhotoRecord:
        """Reads a record, applies fn to it and writes the result back."""
        with self._mutation_lock(photo_id):
            record = self.get(photo_id)
            updated = fn(record)
            self.put(updated)
        return updated

    @contextmanager
    def _mutation_lock(self, photo_id: str):
        if not self.serialize_mutations:
            yield
            return
        # entry is [lock, holders]; dropped once nobody holds or waits on it
        with self._locks_guard:
            entry = self._locks.setdefault(photo_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[photo_id]
