from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import Unauthenticated
from ..core.security import decode_token
from ..db.database import get_db
from ..services.attachment_service import AttachmentService, Caller, ProductImageService, StockDesignImageService
from ..services.invoice_service import InvoiceService
from ..services.stock_design_service import StockDesignFileService
from ..services.storage_service import ObjectStorage

# auto_error=False so a missing header is a 401, not FastAPI's default 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Caller:
    """Get current authenticated caller"""
    if credentials is None or not credentials.credentials:
        raise Unauthenticated()

    claims = decode_token(credentials.credentials)
    if not claims or not claims.get("sub"):
        raise Unauthenticated()

    return Caller(id=str(claims["sub"]), email=claims.get("email"))


def get_order_storage(request: Request) -> ObjectStorage:
    return request.app.state.order_storage


def get_product_storage(request: Request) -> ObjectStorage:
    return request.app.state.product_storage


def get_stock_file_storage(request: Request) -> ObjectStorage:
    return request.app.state.stock_file_storage


def get_stock_image_storage(request: Request) -> ObjectStorage:
    return request.app.state.stock_image_storage


def get_attachment_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_order_storage),
) -> AttachmentService:
    return AttachmentService(
        db,
        storage,
        max_bytes=settings.max_order_attachment_bytes,
        signed_url_ttl=settings.SIGNED_URL_EXPIRES_SECONDS,
    )


def get_product_image_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_product_storage),
) -> ProductImageService:
    return ProductImageService(db, storage, max_bytes=settings.max_product_image_bytes)


def get_stock_design_file_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_stock_file_storage),
) -> StockDesignFileService:
    return StockDesignFileService(db, storage, max_bytes=settings.max_stock_design_file_bytes)


def get_stock_design_image_service(
    db: AsyncSession = Depends(get_db),
    storage: ObjectStorage = Depends(get_stock_image_storage),
) -> StockDesignImageService:
    return StockDesignImageService(db, storage, max_bytes=settings.max_stock_design_image_bytes)


def get_invoice_service(db: AsyncSession = Depends(get_db)) -> InvoiceService:
    return InvoiceService(
        db,
        settings.TCO_SELLER_ID,
        settings.TCO_SECRET_WORD,
        currency=settings.TCO_DEFAULT_CURRENCY,
        checkout_url=settings.TCO_CHECKOUT_URL,
    )
