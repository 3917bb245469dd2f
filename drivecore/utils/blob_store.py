import logging
import os
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from supabase import Client, create_client

from drivecore.core.config import settings
from drivecore.core.exceptions import StorageError

logger = logging.getLogger(__name__)


def build_blob_key(owner_id: str, filename: str) -> str:
    """Date-partitioned, collision-free key: ``{owner}/{yyyy}/{mm}/{uuid}{ext}``."""
    today = datetime.now(timezone.utc)
    extension = os.path.splitext(filename)[1].lower()
    return f"{owner_id}/{today.year}/{today.month:02d}/{uuid.uuid4().hex}{extension}"


class BlobStore(ABC):
    """Opaque byte storage the metadata core writes to and deletes from."""

    @abstractmethod
    def put(self, path: str, data: bytes) -> str:
        """Store ``data`` under ``path`` and return the blob ref."""

    @abstractmethod
    def get(self, ref: str) -> bytes:
        """Read a blob back. Raises StorageError if it cannot be read."""

    @abstractmethod
    def delete(self, ref: str) -> None:
        """Remove a blob. Raises StorageError on failure."""

    @abstractmethod
    def exists(self, ref: str) -> bool:
        pass

    def delete_quietly(self, ref: str) -> bool:
        """Best-effort delete used for cleanup: failures are logged, never raised."""
        try:
            self.delete(ref)
            return True
        except Exception:
            logger.exception("Failed to delete blob (orphaned): %s", ref)
            return False


class LocalBlobStore(BlobStore):
    def __init__(self, root: str):
        self.root = Path(root)

    def _resolve(self, ref: str) -> Path:
        target = (self.root / ref.lstrip("/")).resolve()
        if self.root.resolve() not in target.parents:
            raise StorageError("Blob path escapes the storage root")
        return target

    def put(self, path: str, data: bytes) -> str:
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.exception("Failed to write blob %s", path)
            raise StorageError("Failed to store file content") from e
        logger.info("Stored blob %s (%d bytes)", path, len(data))
        return path

    def get(self, ref: str) -> bytes:
        try:
            return self._resolve(ref).read_bytes()
        except OSError as e:
            logger.exception("Failed to read blob %s", ref)
            raise StorageError("Failed to read file content") from e

    def delete(self, ref: str) -> None:
        target = self._resolve(ref)
        try:
            target.unlink()
        except FileNotFoundError:
            logger.warning("Blob not found (already deleted?): %s", ref)
        except OSError as e:
            raise StorageError("Failed to delete file content") from e
        else:
            logger.info("Deleted blob %s", ref)

    def exists(self, ref: str) -> bool:
        return self._resolve(ref).is_file()


class SupabaseBlobStore(BlobStore):
    def __init__(self, url: str, key: str, bucket: str = "uploads"):
        self.client: Client = create_client(url, key)
        self.bucket = bucket

    def put(self, path: str, data: bytes) -> str:
        try:
            res = self.client.storage.from_(self.bucket).upload(path, data)
        except Exception as e:
            logger.exception("Upload failed for %s", path)
            raise StorageError("Failed to store file content") from e

        if not getattr(res, "path", None):
            logger.error("Supabase returned no path for %s", path)
            raise StorageError("Failed to store file content")

        logger.info("Uploaded %s to Supabase -> %s", path, res.path)
        return res.path

    def get(self, ref: str) -> bytes:
        try:
            return self.client.storage.from_(self.bucket).download(ref)
        except Exception as e:
            logger.exception("Download failed for %s", ref)
            raise StorageError("Failed to read file content") from e

    def delete(self, ref: str) -> None:
        try:
            self.client.storage.from_(self.bucket).remove([ref])
        except Exception as e:
            raise StorageError("Failed to delete file content") from e
        logger.info("Deleted %s from Supabase", ref)

    def exists(self, ref: str) -> bool:
        folder, _, name = ref.rpartition("/")
        try:
            entries = self.client.storage.from_(self.bucket).list(folder, {"search": name})
        except Exception as e:
            raise StorageError("Failed to query file content") from e
        return any(entry.get("name") == name for entry in entries)


@contextmanager
def stored_blob(blob_store: BlobStore, key: str, data: bytes) -> Iterator[str]:
    """Write a blob, then roll it back if the block that records it fails.

    Usage::

        with stored_blob(store, key, data) as ref:
            ...commit metadata pointing at ref...
    """
    ref = blob_store.put(key, data)
    try:
        yield ref
    except BaseException:
        logger.warning("Rolling back blob %s after failed metadata commit", ref)
        blob_store.delete_quietly(ref)
        raise


def create_blob_store() -> BlobStore:
    if settings.blob_backend == "supabase":
        if not settings.supabase_url or not settings.supabase_key:
            raise RuntimeError("supabase_url and supabase_key are required for the supabase backend")
        return SupabaseBlobStore(
            settings.supabase_url, settings.supabase_key, settings.supabase_bucket
        )
    return LocalBlobStore(settings.local_blob_root)
