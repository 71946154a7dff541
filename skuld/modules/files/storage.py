"""
MinIO-backed object store for PDF snapshots, proofs, attachments and logos
"""
import asyncio
import io
import logging
from typing import Optional

from minio import Minio
from minio.error import S3Error

from skuld.core.config import settings

logger = logging.getLogger(__name__)


class MinIOStorage:
    """Object store on a single MinIO bucket.

    The minio client is blocking, so every call runs in a worker thread.
    """

    def __init__(self, client: Optional[Minio] = None, bucket_name: Optional[str] = None):
        self.client = client or Minio(
            settings.minio_endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL
        )
        self.bucket_name = bucket_name or settings.MINIO_BUCKET_NAME
        self._bucket_ready = False

    def _ensure_bucket_exists(self):
        """Ensure the bucket exists, create if it doesn't"""
        if self._bucket_ready:
            return
        if not self.client.bucket_exists(self.bucket_name):
            self.client.make_bucket(self.bucket_name)
            logger.info(f"Created MinIO bucket: {self.bucket_name}")
        self._bucket_ready = True

    def _put(self, key: str, data: bytes, content_type: str):
        self._ensure_bucket_exists()
        self.client.put_object(
            self.bucket_name,
            key,
            io.BytesIO(data),
            length=len(data),
            content_type=content_type,
        )

    def _get(self, key: str) -> Optional[bytes]:
        self._ensure_bucket_exists()
        response = None
        try:
            response = self.client.get_object(self.bucket_name, key)
            return response.read()
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return None
            raise
        finally:
            if response is not None:
                response.close()
                response.release_conn()

    def _exists(self, key: str) -> bool:
        self._ensure_bucket_exists()
        try:
            self.client.stat_object(self.bucket_name, key)
            return True
        except S3Error as e:
            if e.code in ("NoSuchKey", "NoSuchObject"):
                return False
            raise

    def _delete(self, key: str):
        self._ensure_bucket_exists()
        self.client.remove_object(self.bucket_name, key)

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        await asyncio.to_thread(self._put, key, data, content_type)
        logger.debug(f"Stored object {key} ({len(data)} bytes)")

    async def get(self, key: str) -> Optional[bytes]:
        return await asyncio.to_thread(self._get, key)

    async def exists(self, key: str) -> bool:
        return await asyncio.to_thread(self._exists, key)

    async def delete(self, key: str) -> None:
        await asyncio.to_thread(self._delete, key)
        logger.debug(f"Deleted object {key}")


async def delete_objects(storage, keys) -> int:
    """Delete several objects in parallel, logging failures instead of raising.

    Returns the number of objects that could not be deleted.
    """
    keys = list(keys)
    if not keys:
        return 0
    results = await asyncio.gather(*(storage.delete(key) for key in keys), return_exceptions=True)
    failures = 0
    for key, result in zip(keys, results):
        if isinstance(result, Exception):
            failures += 1
            logger.warning(f"Could not delete object {key}: {result}")
    return failures
