"""
Resume blob storage. Candidates keep the storage key in ``resume_url``.
"""
import asyncio
import logging
import os
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import aioboto3

from resumerank.core.config import settings
from resumerank.core.validators import InputValidator

logger = logging.getLogger(__name__)

RESUME_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


@dataclass
class StorageCleanupResult:
    removed: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


def build_resume_key(job_id: str, file_name: str) -> str:
    safe_name = InputValidator.sanitize_file_name(file_name) or "resume"
    return f"resumes/{job_id}/{uuid.uuid4().hex}_{safe_name}"


def resume_content_type(file_name: str) -> Optional[str]:
    _, ext = os.path.splitext((file_name or "").lower())
    return RESUME_CONTENT_TYPES.get(ext)


class ResumeStorage(ABC):
    @abstractmethod
    async def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        pass

    @abstractmethod
    async def read(self, key: str) -> bytes:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    async def remove_resumes(self, keys: Iterable[Optional[str]]) -> StorageCleanupResult:
        """Delete every key, collecting failures instead of raising."""
        result = StorageCleanupResult()
        for key in keys:
            if not key:
                continue
            try:
                await self.delete(key)
                result.removed.append(key)
            except Exception as e:
                logger.error(f"Failed to remove resume {key}: {e}")
                result.failed[key] = str(e)
        return result


class LocalResumeStorage(ResumeStorage):
    def __init__(self, base_dir: str):
        self.base_dir = os.path.abspath(base_dir)

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.base_dir, key))
        if not path.startswith(self.base_dir + os.sep):
            raise ValueError(f"Invalid storage key: {key}")
        return path

    async def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        await asyncio.to_thread(_write_bytes, self._path(key), data)
        return key

    async def read(self, key: str) -> bytes:
        return await asyncio.to_thread(_read_bytes, self._path(key))

    async def delete(self, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            await asyncio.to_thread(os.remove, path)


def _write_bytes(path: str, data: bytes) -> None:
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as f:
        f.write(data)


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()


class S3ResumeStorage(ResumeStorage):
    def __init__(self, bucket_name: str, region: Optional[str] = None):
        assert bucket_name, "Bucket name must be provided"
        self.bucket_name = bucket_name
        self.session = aioboto3.Session(region_name=region)

    async def save(self, key: str, data: bytes, content_type: Optional[str] = None) -> str:
        extra = {"ContentType": content_type} if content_type else {}
        async with self.session.client("s3") as client:
            await client.put_object(Bucket=self.bucket_name, Key=key, Body=data, **extra)
        return key

    async def read(self, key: str) -> bytes:
        async with self.session.client("s3") as client:
            response = await client.get_object(Bucket=self.bucket_name, Key=key)
            return await response["Body"].read()

    async def delete(self, key: str) -> None:
        async with self.session.client("s3") as client:
            await client.delete_object(Bucket=self.bucket_name, Key=key)


_storage: Optional[ResumeStorage] = None


def get_resume_storage() -> ResumeStorage:
    global _storage
    if _storage is None:
        if settings.STORAGE_BACKEND == "s3":
            _storage = S3ResumeStorage(settings.AWS_S3_BUCKET, settings.AWS_REGION)
        else:
            _storage = LocalResumeStorage(settings.STORAGE_LOCAL_DIR)
    return _storage
