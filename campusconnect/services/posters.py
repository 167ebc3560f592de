"""Event poster hosting on S3."""
from __future__ import annotations

import logging
import uuid
from pathlib import Path
from typing import Optional
from urllib.parse import unquote, urlparse

import boto3
from botocore.config import Config as BotoConfig
from werkzeug.datastructures import FileStorage

from ..errors import ValidationError

logger = logging.getLogger(__name__)


class PosterStore:
    def __init__(self, bucket: str, region: str, key_prefix: str = "campusconnect_events",
                 max_bytes: int = 2 * 1024 * 1024, client=None):
        self.bucket = (bucket or "").strip()
        self.region = (region or "").strip()
        self.key_prefix = key_prefix.strip("/")
        self.max_bytes = max_bytes
        self._client = client

    @property
    def client(self):
        if self._client is None:
            if not self.bucket or not self.region:
                raise RuntimeError("S3 configuration missing")
            self._client = boto3.client(
                "s3",
                region_name=self.region,
                config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "virtual"}),
            )
        return self._client

    def _build_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def key_from_url(self, url: Optional[str]) -> Optional[str]:
        if not url or not self.bucket:
            return None
        parsed = urlparse(url)
        host = (parsed.netloc or "").lower()
        path = (parsed.path or "").lstrip("/")
        if not host or not path:
            return None
        bucket = self.bucket.lower()
        if host == f"{bucket}.s3.amazonaws.com" or host.startswith(f"{bucket}.s3."):
            return unquote(path)
        return None

    def upload(self, poster: FileStorage) -> str:
        if not poster.mimetype or not poster.mimetype.startswith("image/"):
            raise ValidationError("Poster must be an image")

        data = poster.read()
        if not data:
            raise ValidationError("Poster file is empty")
        if len(data) > self.max_bytes:
            raise ValidationError("Poster must be 2MB or smaller")

        extension = Path(poster.filename or "").suffix.lower()
        key = f"{self.key_prefix}/{uuid.uuid4().hex}{extension}"
        self.client.put_object(
            Bucket=self.bucket,
            Key=key,
            Body=data,
            ContentType=poster.mimetype,
        )
        return self._build_url(key)

    def delete(self, url: Optional[str]) -> bool:
        """Remove the object behind ``url``. Returns False for foreign URLs."""
        key = self.key_from_url(url)
        if not key:
            return False
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info("Deleted poster %s", key)
        return True
