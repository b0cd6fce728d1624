"""S3-compatible object storage (Backblaze B2) for order attachments, catalogue images and stock design files."""

import logging
import re
import uuid
from dataclasses import dataclass
from typing import Optional

import boto3
from botocore.config import Config as BotoConfig

logger = logging.getLogger(__name__)

ORDER_ATTACHMENT_PREFIX = "orders"
PRODUCT_IMAGE_PREFIX = "product-images"
STOCK_DESIGN_IMAGE_PREFIX = "stock-design-images"
STOCK_DESIGN_FILE_PREFIX = "stock-designs"

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True)
class StorageConfig:
    endpoint: str
    region: str
    bucket_name: str
    access_key_id: str
    secret_access_key: str

    @property
    def endpoint_url(self) -> str:
        return f"https://{self.endpoint}"

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket_name}.{self.endpoint}/{key}"


def sanitize_filename(filename: str) -> str:
    return _UNSAFE_CHARS.sub("_", filename)


def get_file_extension(filename: str) -> str:
    """Extension including the dot; a leading dot (".env") is not an extension."""
    last_dot = filename.rfind(".")
    return filename[last_dot:] if last_dot > 0 else ""


def generate_stored_filename(original_filename: str) -> str:
    """Unique, traversal-free object name: ``{uuid4}-{sanitized stem}{extension}``."""
    extension = get_file_extension(original_filename)
    stem = original_filename[: len(original_filename) - len(extension)] if extension else original_filename
    return f"{uuid.uuid4()}-{sanitize_filename(stem)}{sanitize_filename(extension)}"


def order_attachment_key(order_id: str, stored_filename: str) -> str:
    return f"{ORDER_ATTACHMENT_PREFIX}/{sanitize_filename(str(order_id))}/{stored_filename}"


def image_key(prefix: str, stored_filename: str) -> str:
    return f"{prefix}/{stored_filename}"


def is_image_key(prefix: str, key: Optional[str]) -> bool:
    """True when ``key`` names a single object directly under ``prefix``."""
    if not key or not key.startswith(f"{prefix}/"):
        return False
    name = key[len(prefix) + 1:]
    return bool(name) and "/" not in name and name not in (".", "..")


def product_image_key(stored_filename: str) -> str:
    return image_key(PRODUCT_IMAGE_PREFIX, stored_filename)


def is_product_image_key(key: Optional[str]) -> bool:
    return is_image_key(PRODUCT_IMAGE_PREFIX, key)


def stock_design_file_key(stock_design_id: str, stored_filename: str) -> str:
    return f"{STOCK_DESIGN_FILE_PREFIX}/{sanitize_filename(str(stock_design_id))}/{stored_filename}"


class ObjectStorage:
    """Thin wrapper around a boto3 S3 client bound to one bucket.

    Construct once per process and share it; boto3 clients are thread safe.
    """

    def __init__(self, config: StorageConfig, client=None):
        self.config = config
        self.client = client or boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            aws_access_key_id=config.access_key_id or None,
            aws_secret_access_key=config.secret_access_key or None,
            config=BotoConfig(signature_version="s3v4", s3={"addressing_style": "path"}),
        )

    @property
    def bucket(self) -> str:
        return self.config.bucket_name

    def put_object(self, key: str, data: bytes, content_type: Optional[str] = None) -> None:
        params = {"Bucket": self.bucket, "Key": key, "Body": data}
        if content_type:
            params["ContentType"] = content_type
        self.client.put_object(**params)
        logger.info(f"Stored object {key} in {self.bucket} ({len(data)} bytes)")

    def delete_object(self, key: str) -> None:
        self.client.delete_object(Bucket=self.bucket, Key=key)
        logger.info(f"Deleted object {key} from {self.bucket}")

    def generate_signed_url(self, key: str, expires_in: int = 3600) -> str:
        return self.client.generate_presigned_url(
            "get_object",
            Params={"Bucket": self.bucket, "Key": key},
            ExpiresIn=expires_in,
        )

    def public_url(self, key: str) -> str:
        return self.config.public_url(key)
