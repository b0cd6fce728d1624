import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import Forbidden, InvalidInput, NotFound, UpstreamFailure
from ..models.order_attachment import OrderAttachment as OrderAttachmentModel
from .access_policy import require_admin, resolve_attachment_access
from .storage_service import (
    PRODUCT_IMAGE_PREFIX,
    STOCK_DESIGN_IMAGE_PREFIX,
    ObjectStorage,
    generate_stored_filename,
    image_key,
    is_image_key,
    order_attachment_key,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Caller:
    id: str
    email: Optional[str] = None


def check_upload(filename: Optional[str], data: Optional[bytes], max_bytes: int) -> None:
    if not filename or data is None:
        raise InvalidInput("Missing file")
    if len(data) > max_bytes:
        raise InvalidInput(f"File size exceeds {max_bytes // (1024 * 1024)}MB limit")


async def read_limited(upload, max_bytes: int) -> bytes:
    """Read at most ``max_bytes + 1`` bytes of an upload.

    One byte past the ceiling is enough for ``check_upload`` to reject the
    file, so an oversized body is never held in memory in full.
    """
    return await upload.read(max_bytes + 1)


async def discard_object(storage: ObjectStorage, key: str) -> None:
    """Best-effort removal of an object no row points at."""
    try:
        await run_in_threadpool(storage.delete_object, key)
    except Exception as e:
        logger.error(f"Failed to remove unreferenced object {key}: {e}")


async def rollback_quietly(db: AsyncSession) -> None:
    try:
        await db.rollback()
    except Exception as e:
        logger.error(f"Session rollback failed: {e}")


class AttachmentService:
    """Upload, list, sign and delete order attachments.

    Object bytes live in the bucket and metadata in ``order_attachments``.
    The two stores share no transaction: uploads write the object first and
    remove it again if the metadata row cannot be committed.
    """

    def __init__(
        self,
        db: AsyncSession,
        storage: ObjectStorage,
        max_bytes: int = 20 * 1024 * 1024,
        signed_url_ttl: int = 3600,
    ):
        self.db = db
        self.storage = storage
        self.max_bytes = max_bytes
        self.signed_url_ttl = signed_url_ttl

    async def _get_or_404(self, attachment_id: str) -> OrderAttachmentModel:
        result = await self.db.execute(
            select(OrderAttachmentModel).where(OrderAttachmentModel.id == attachment_id)
        )
        attachment = result.scalar_one_or_none()
        if not attachment:
            raise NotFound("Attachment not found")
        return attachment

    async def upload(
        self,
        caller: Caller,
        order_id: str,
        filename: Optional[str],
        content_type: Optional[str],
        data: Optional[bytes],
    ) -> OrderAttachmentModel:
        if not order_id:
            raise InvalidInput("Missing file or orderId")
        check_upload(filename, data, self.max_bytes)

        access = await resolve_attachment_access(self.db, caller.id, order_id)
        if not access.can_upload:
            raise Forbidden()

        stored_filename = generate_stored_filename(filename)
        s3_key = order_attachment_key(order_id, stored_filename)
        mime_type = content_type or "application/octet-stream"

        try:
            await run_in_threadpool(self.storage.put_object, s3_key, data, mime_type)
        except Exception as e:
            logger.error(f"Failed to store attachment for order {order_id}: {e}")
            raise UpstreamFailure()

        attachment = OrderAttachmentModel(
            order_id=order_id,
            original_filename=filename,
            stored_filename=stored_filename,
            file_size=len(data),
            mime_type=mime_type,
            s3_key=s3_key,
            uploaded_by=caller.id,
        )
        try:
            self.db.add(attachment)
            await self.db.commit()
        except Exception as e:
            logger.error(f"Failed to record attachment {s3_key}, removing stored object: {e}")
            await discard_object(self.storage, s3_key)
            await rollback_quietly(self.db)
            raise UpstreamFailure()

        # Row and object are both in place from here on; never compensate
        try:
            await self.db.refresh(attachment)
        except Exception as e:
            logger.error(f"Attachment {s3_key} recorded but could not be reloaded: {e}")
            raise UpstreamFailure()

        logger.info(f"User {caller.id} ({access.role.value}) uploaded {s3_key}")
        return attachment

    async def list_for_order(self, caller: Caller, order_id: str) -> List[OrderAttachmentModel]:
        access = await resolve_attachment_access(self.db, caller.id, order_id)
        if not access.can_view:
            raise Forbidden()

        result = await self.db.execute(
            select(OrderAttachmentModel)
            .where(OrderAttachmentModel.order_id == order_id)
            .order_by(OrderAttachmentModel.uploaded_at.desc())
        )
        return list(result.scalars().all())

    async def get_download(self, caller: Caller, attachment_id: str) -> Tuple[str, OrderAttachmentModel]:
        attachment = await self._get_or_404(attachment_id)

        access = await resolve_attachment_access(self.db, caller.id, attachment.order_id)
        if not access.can_view:
            raise Forbidden()

        try:
            url = await run_in_threadpool(
                self.storage.generate_signed_url, attachment.s3_key, self.signed_url_ttl
            )
        except Exception as e:
            logger.error(f"Failed to sign download URL for {attachment.s3_key}: {e}")
            raise UpstreamFailure()
        return url, attachment

    async def delete(self, caller: Caller, attachment_id: str) -> None:
        attachment = await self._get_or_404(attachment_id)

        access = await resolve_attachment_access(self.db, caller.id, attachment.order_id)
        if not access.can_delete:
            raise Forbidden("Only admins can delete attachments")

        try:
            await run_in_threadpool(self.storage.delete_object, attachment.s3_key)
        except Exception as e:
            logger.error(f"Failed to delete object {attachment.s3_key}: {e}")
            raise UpstreamFailure()

        try:
            await self.db.delete(attachment)
            await self.db.commit()
        except Exception as e:
            logger.error(f"Object {attachment.s3_key} deleted but metadata row {attachment_id} was not: {e}")
            await rollback_quietly(self.db)
            raise UpstreamFailure()

        logger.info(f"Admin {caller.id} deleted attachment {attachment_id}")


class PublicImageService:
    """Admin-only images in a public-read bucket, keyed ``{prefix}/{stored name}``."""

    key_prefix = PRODUCT_IMAGE_PREFIX
    key_param = "s3Key"

    def __init__(self, db: AsyncSession, storage: ObjectStorage, max_bytes: int = 10 * 1024 * 1024):
        self.db = db
        self.storage = storage
        self.max_bytes = max_bytes

    async def require_admin(self, caller: Caller) -> None:
        await require_admin(self.db, caller.id)

    async def upload(
        self,
        caller: Caller,
        filename: Optional[str],
        content_type: Optional[str],
        data: Optional[bytes],
    ) -> Tuple[str, str]:
        """Store an image and return ``(public_url, key)``."""
        await self.require_admin(caller)
        check_upload(filename, data, self.max_bytes)

        key = image_key(self.key_prefix, generate_stored_filename(filename))
        try:
            await run_in_threadpool(
                self.storage.put_object, key, data, content_type or "application/octet-stream"
            )
        except Exception as e:
            logger.error(f"Failed to store image {key}: {e}")
            raise UpstreamFailure()
        logger.info(f"Admin {caller.id} uploaded image {key}")
        return self.storage.public_url(key), key

    async def delete(self, caller: Caller, key: Optional[str]) -> None:
        await self.require_admin(caller)
        if not key:
            raise InvalidInput(f"Missing {self.key_param}")
        if not is_image_key(self.key_prefix, key):
            raise InvalidInput(f"Invalid {self.key_param}")

        try:
            await run_in_threadpool(self.storage.delete_object, key)
        except Exception as e:
            logger.error(f"Failed to delete image {key}: {e}")
            raise UpstreamFailure()


class ProductImageService(PublicImageService):
    key_prefix = PRODUCT_IMAGE_PREFIX
    key_param = "s3Key"


class StockDesignImageService(PublicImageService):
    key_prefix = STOCK_DESIGN_IMAGE_PREFIX
    key_param = "storagePath"
