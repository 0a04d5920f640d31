"""
Product and consultant image storage on Supabase Storage.
"""

import base64
import binascii
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from supabase import create_client, Client

from config import Config
from services.error_handler import ImageUploadError

logger = logging.getLogger(__name__)

DATA_URI_PREFIX = re.compile(r'^data:image/\w+;base64,')


@dataclass
class ImageTransfer:
    """Result of moving an embedded Odoo image to object storage."""
    url: Optional[str] = None
    backup: Optional[str] = None
    failed: bool = False


def _epoch_ms(now: Optional[datetime]) -> int:
    now = now or datetime.now(timezone.utc)
    return int(now.timestamp() * 1000)


def product_image_name(external_id: int, now: Optional[datetime] = None) -> str:
    """File name keyed by Odoo id and upload time, e.g. 42-1718000000000.jpg."""
    return f"{external_id}-{_epoch_ms(now)}.jpg"


def consultant_image_name(external_id: int, now: Optional[datetime] = None) -> str:
    """Profile photo name, e.g. consultant-7-1718000000000.jpg."""
    return f"consultant-{external_id}-{_epoch_ms(now)}.jpg"


def decode_image(b64_data: str) -> bytes:
    """Decode base64 image data, with or without a data URI prefix."""
    payload = DATA_URI_PREFIX.sub('', b64_data.strip())
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageUploadError(f"Invalid base64 image data: {e}") from e


class SupabaseImageStorage:
    """Uploads images to a public Supabase Storage bucket."""

    def __init__(self, client: Client, bucket: str = Config.PRODUCT_IMAGE_BUCKET, folder: str = 'images'):
        self.client = client
        self.bucket = bucket
        self.folder = folder

    @classmethod
    def from_env(cls, bucket: Optional[str] = None, folder: str = 'images') -> 'SupabaseImageStorage':
        """Create a storage backed by the service-role client.

        Defaults to the product bucket; consultant photos go to the root of
        the consultant profiles bucket.
        """
        url = os.getenv('SUPABASE_URL')
        key = os.getenv('SUPABASE_SERVICE_ROLE_KEY')
        if not url or not key:
            raise ValueError("Missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY")
        bucket = bucket or os.getenv('PRODUCT_IMAGE_BUCKET', Config.PRODUCT_IMAGE_BUCKET)
        return cls(create_client(url, key), bucket, folder)

    def object_path(self, file_name: str) -> str:
        return f"{self.folder}/{file_name}" if self.folder else file_name

    def upload_base64(self, b64_data: str, file_name: str) -> str:
        """Store a base64 image and return its public URL.

        Raises:
            ImageUploadError: decoding or upload failed
        """
        image_bytes = decode_image(b64_data)
        path = self.object_path(file_name)

        try:
            bucket = self.client.storage.from_(self.bucket)
            bucket.upload(
                path,
                image_bytes,
                file_options={"content-type": "image/jpeg", "upsert": "true"}
            )
            public_url = bucket.get_public_url(path)
        except Exception as e:
            logger.warning(f"Image upload to {self.bucket}/{path} failed: {e}")
            raise ImageUploadError(f"Upload of {path} failed: {e}") from e

        logger.debug(f"Uploaded image {self.bucket}/{path}")
        return public_url
