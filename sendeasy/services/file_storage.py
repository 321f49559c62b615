"""
File storage adapters.

The lifecycle core stores only file metadata and a URL. The bytes belong to
a ``FileStorage`` adapter: ``save`` returns the URL, ``delete`` is best
effort and never raises.
"""

import logging
import re
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from sendeasy.core.config import Settings
from sendeasy.core.exceptions import StorageFailure

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_file_name(name: str) -> str:
    """Strip directories and unsafe characters from a client-supplied name."""
    base = Path(name.replace("\\", "/")).name
    cleaned = _UNSAFE_CHARS.sub("_", base).strip("._")
    return cleaned[:120] or "file"


class FileStorage(ABC):
    @abstractmethod
    def save(self, data: bytes, name: str, mime_type: str) -> str:
        """Persist bytes and return the URL they can be retrieved from."""

    @abstractmethod
    def delete(self, url: str) -> None:
        """Remove the bytes behind ``url``. Failures are logged, never raised."""


class LocalFileStorage(FileStorage):
    """Stores bytes under ``upload_dir`` and serves them through the download route."""

    def __init__(self, upload_dir: str, url_prefix: str = "/api/files/download"):
        self.upload_dir = Path(upload_dir)
        self.url_prefix = url_prefix.rstrip("/")
        self.upload_dir.mkdir(parents=True, exist_ok=True)

    def save(self, data: bytes, name: str, mime_type: str) -> str:
        stored_name = f"{uuid.uuid4().hex}_{safe_file_name(name)}"
        try:
            (self.upload_dir / stored_name).write_bytes(data)
        except OSError as e:
            logger.error(f"Failed to write upload {stored_name}: {e}")
            raise StorageFailure(f"Could not store file '{name}'") from e
        logger.debug("Stored upload", extra={"stored_name": stored_name, "size": len(data)})
        return f"{self.url_prefix}/{stored_name}"

    def delete(self, url: str) -> None:
        path = self.resolve(url.rsplit("/", 1)[-1])
        if path is None:
            logger.warning(f"Refusing to delete unrecognised upload URL: {url}")
            return
        try:
            path.unlink()
        except FileNotFoundError:
            logger.debug(f"Upload already gone: {path.name}")
        except OSError as e:
            logger.warning(f"Error deleting file {path.name}: {e}")

    def resolve(self, stored_name: str) -> Optional[Path]:
        """Map a stored name to a path inside the upload directory, or None."""
        if not stored_name or stored_name != Path(stored_name).name or stored_name.startswith("."):
            return None
        path = (self.upload_dir / stored_name).resolve()
        if path.parent != self.upload_dir.resolve():
            return None
        return path


class S3FileStorage(FileStorage):
    """Stores bytes in an S3 bucket; URLs have the form ``s3://bucket/key``."""

    def __init__(
        self,
        bucket: str,
        prefix: str = "uploads/",
        region_name: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ):
        self.bucket = bucket
        self.prefix = prefix
        self.client = client or boto3.client(
            "s3", region_name=region_name, endpoint_url=endpoint_url
        )

    def save(self, data: bytes, name: str, mime_type: str) -> str:
        key = f"{self.prefix}{uuid.uuid4().hex}_{safe_file_name(name)}"
        try:
            self.client.put_object(
                Bucket=self.bucket, Key=key, Body=data, ContentType=mime_type
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to upload {key} to bucket {self.bucket}: {e}")
            raise StorageFailure(f"Could not store file '{name}'") from e
        return f"s3://{self.bucket}/{key}"

    def delete(self, url: str) -> None:
        expected = f"s3://{self.bucket}/"
        if not url.startswith(expected):
            logger.warning(f"Refusing to delete object outside bucket {self.bucket}: {url}")
            return
        key = url[len(expected):]
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Error deleting object {key}: {e}")


def create_file_storage(config: Settings) -> FileStorage:
    """Build the adapter selected by ``storage_backend``."""
    if config.storage_backend == "s3":
        return S3FileStorage(
            bucket=config.s3_bucket or "",
            prefix=config.s3_prefix,
            region_name=config.s3_region,
            endpoint_url=config.s3_endpoint_url,
        )
    return LocalFileStorage(config.upload_dir, config.upload_url_prefix)
