import logging
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InvalidInput, NotFound, UpstreamFailure
from ..models.stock_design import StockDesign as StockDesignModel
from .access_policy import require_admin
from .attachment_service import Caller, check_upload, discard_object, rollback_quietly
from .storage_service import ObjectStorage, generate_stored_filename, stock_design_file_key

logger = logging.getLogger(__name__)

ZIP_EXTENSION = ".zip"


class StockDesignFileService:
    """Admin management of the ZIP delivered with a stock design.

    The object key is recorded on the ``stock_designs`` row. A replacement
    upload gets a fresh key, so the previous file is only removed once the
    row points at the new one.
    """

    def __init__(self, db: AsyncSession, storage: ObjectStorage, max_bytes: int = 100 * 1024 * 1024):
        self.db = db
        self.storage = storage
        self.max_bytes = max_bytes

    async def _get_or_404(self, stock_design_id: str) -> StockDesignModel:
        result = await self.db.execute(
            select(StockDesignModel).where(StockDesignModel.id == stock_design_id)
        )
        design = result.scalar_one_or_none()
        if not design:
            raise NotFound("Stock design not found")
        return design

    async def upload(
        self,
        caller: Caller,
        stock_design_id: Optional[str],
        filename: Optional[str],
        content_type: Optional[str],
        data: Optional[bytes],
    ) -> StockDesignModel:
        await require_admin(self.db, caller.id)
        if not stock_design_id:
            raise InvalidInput("Stock design ID is required")
        if not filename or data is None:
            raise InvalidInput("No file provided")
        if not filename.lower().endswith(ZIP_EXTENSION):
            raise InvalidInput("Only ZIP files are allowed")
        check_upload(filename, data, self.max_bytes)

        design = await self._get_or_404(stock_design_id)
        previous_key = design.attachment_url
        key = stock_design_file_key(stock_design_id, generate_stored_filename(filename))

        try:
            await run_in_threadpool(
                self.storage.put_object, key, data, content_type or "application/zip"
            )
        except Exception as e:
            logger.error(f"Failed to store file for stock design {stock_design_id}: {e}")
            raise UpstreamFailure()

        design.attachment_url = key
        design.attachment_filename = filename
        design.attachment_size = len(data)
        try:
            await self.db.commit()
        except Exception as e:
            logger.error(f"Failed to update stock design {stock_design_id}, removing {key}: {e}")
            await discard_object(self.storage, key)
            await rollback_quietly(self.db)
            raise UpstreamFailure()

        if previous_key and previous_key != key:
            await discard_object(self.storage, previous_key)

        logger.info(f"Admin {caller.id} uploaded {key} for stock design {stock_design_id}")
        return design

    async def delete(self, caller: Caller, stock_design_id: Optional[str]) -> None:
        await require_admin(self.db, caller.id)
        if not stock_design_id:
            raise InvalidInput("Stock design ID is required")

        design = await self._get_or_404(stock_design_id)
        key = design.attachment_url
        if key:
            try:
                await run_in_threadpool(self.storage.delete_object, key)
            except Exception as e:
                logger.error(f"Failed to delete stock design file {key}: {e}")
                raise UpstreamFailure()

        design.attachment_url = None
        design.attachment_filename = None
        design.attachment_size = None
        try:
            await self.db.commit()
        except Exception as e:
            logger.error(f"File {key} deleted but stock design {stock_design_id} still references it: {e}")
            await rollback_quietly(self.db)
            raise UpstreamFailure()

        logger.info(f"Admin {caller.id} removed the file of stock design {stock_design_id}")
