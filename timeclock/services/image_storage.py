import io
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Tuple
from urllib.parse import urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import HTTPException, UploadFile
from PIL import Image, UnidentifiedImageError

from timeclock.core.config import settings

logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS = {"JPEG": "jpg", "PNG": "png", "GIF": "gif", "WEBP": "webp"}
CONTENT_TYPES = {"JPEG": "image/jpeg", "PNG": "image/png", "GIF": "image/gif", "WEBP": "image/webp"}


class StorageError(Exception):
    pass


class ImageStorage:
    """Service for storing uploaded images (local or S3)."""

    def __init__(
        self,
        use_s3: bool = settings.USE_S3,
        upload_dir: str = settings.UPLOAD_DIR,
        public_base_url: str = settings.PUBLIC_BASE_URL,
        bucket: str = settings.S3_BUCKET,
        region: str = settings.S3_REGION,
    ):
        self.use_s3 = use_s3
        self.upload_dir = Path(upload_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.bucket = bucket
        self.region = region
        self._s3_client = None

    @property
    def s3_client(self):
        if self._s3_client is None:
            self._s3_client = boto3.client(
                "s3",
                region_name=self.region,
                aws_access_key_id=settings.AWS_ACCESS_KEY_ID or None,
                aws_secret_access_key=settings.AWS_SECRET_ACCESS_KEY or None,
            )
        return self._s3_client

    @property
    def public_host(self) -> str:
        """Host that serves stored images; the image proxy only fetches from it."""
        if self.use_s3:
            return f"{self.bucket}.s3.{self.region}.amazonaws.com"
        return urlparse(self.public_base_url).hostname or ""

    def public_url(self, key: str) -> str:
        if self.use_s3:
            return f"https://{self.public_host}/{key}"
        return f"{self.public_base_url}/uploads/{key}"

    def _generate_key(self, folder: str, extension: str) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        return f"{folder.strip('/')}/{stamp}_{uuid.uuid4().hex}.{extension}"

    def _optimize_image(self, content: bytes, max_width: int = 1920) -> Tuple[bytes, str]:
        """Downscale wide images and re-encode. Returns (bytes, PIL format)."""
        with Image.open(io.BytesIO(content)) as img:
            image_format = img.format or "JPEG"
            if image_format not in FORMAT_EXTENSIONS:
                image_format = "JPEG"
            try:
                if image_format == "JPEG" and img.mode in ("RGBA", "P", "LA"):
                    img = img.convert("RGB")
                if img.width > max_width:
                    ratio = max_width / img.width
                    img = img.resize((max_width, int(img.height * ratio)), Image.Resampling.LANCZOS)
                buffer = io.BytesIO()
                img.save(buffer, format=image_format, optimize=True, quality=85)
                return buffer.getvalue(), image_format
            except (OSError, ValueError) as e:
                logger.warning("Image optimization failed, storing original: %s", e)
                return content, image_format

    def upload(self, content: bytes, folder: str) -> dict:
        data, image_format = self._optimize_image(content)
        key = self._generate_key(folder, FORMAT_EXTENSIONS[image_format])
        if self.use_s3:
            self._upload_to_s3(data, key, CONTENT_TYPES[image_format])
        else:
            self._upload_local(data, key)
        logger.info("Stored image %s (%d bytes)", key, len(data))
        return {"url": self.public_url(key), "key": key, "size": len(data)}

    def _upload_local(self, data: bytes, key: str):
        file_path = self.upload_dir / key
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageError(f"Local upload failed: {e}") from e

    def _upload_to_s3(self, data: bytes, key: str, content_type: str):
        try:
            self.s3_client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
                ACL="public-read",
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"S3 upload failed: {e}") from e

    def list_images(self, folder: str) -> List[Tuple[str, datetime]]:
        """(key, created-at in UTC) for every stored image under ``folder``."""
        folder = folder.strip("/")
        if self.use_s3:
            items = []
            paginator = self.s3_client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=f"{folder}/"):
                for obj in page.get("Contents", []):
                    items.append((obj["Key"], obj["LastModified"]))
            return items

        root = self.upload_dir / folder
        if not root.exists():
            return []
        items = []
        for path in root.rglob("*"):
            if path.is_file():
                created = datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)
                items.append((path.relative_to(self.upload_dir).as_posix(), created))
        return items

    def delete(self, key: str):
        if self.use_s3:
            self.s3_client.delete_object(Bucket=self.bucket, Key=key)
        else:
            file_path = self.upload_dir / key
            if file_path.exists():
                file_path.unlink()

    def delete_older_than(self, folder: str, cutoff: datetime) -> dict:
        """
        Delete images in ``folder`` created before ``cutoff`` (aware, UTC).
        Returns the number deleted and the number of failures.
        """
        deleted = 0
        errors = 0
        try:
            images = self.list_images(folder)
        except (ClientError, BotoCoreError, OSError) as e:
            logger.error("Could not list images in %s: %s", folder, e)
            return {"deleted": 0, "errors": 1}

        for key, created in images:
            if created >= cutoff:
                continue
            try:
                self.delete(key)
                deleted += 1
            except (ClientError, BotoCoreError, OSError) as e:
                logger.error("Could not delete image %s: %s", key, e)
                errors += 1
        logger.info("Deleted %d images in %s older than %s", deleted, folder, cutoff.isoformat())
        return {"deleted": deleted, "errors": errors}


async def read_image_upload(file: Optional[UploadFile]) -> bytes:
    """Read a multipart image and check that Pillow can decode it."""
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file provided")
    if not (file.content_type or "").startswith("image/"):
        raise HTTPException(status_code=400, detail="File must be an image")

    content = await file.read()
    if not content:
        raise HTTPException(status_code=400, detail="No file provided")
    if len(content) > settings.MAX_UPLOAD_SIZE:
        raise HTTPException(
            status_code=400,
            detail=f"File too large. Max size: {settings.MAX_UPLOAD_SIZE / 1024 / 1024}MB",
        )
    try:
        with Image.open(io.BytesIO(content)) as img:
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise HTTPException(status_code=400, detail="File must be an image")
    return content


# Global instance
image_storage = ImageStorage()
