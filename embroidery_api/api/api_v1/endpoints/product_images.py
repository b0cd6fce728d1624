from typing import Any, Optional
from fastapi import APIRouter, Depends, File, UploadFile

from ....schemas.order_attachment import SuccessResponse
from ....schemas.product_image import ProductImageUploadResponse
from ....services.attachment_service import Caller, ProductImageService, read_limited
from ...deps import get_current_user, get_product_image_service

router = APIRouter()


@router.post("", response_model=ProductImageUploadResponse)
async def upload_product_image(
    file: Optional[UploadFile] = File(None),
    current_user: Caller = Depends(get_current_user),
    service: ProductImageService = Depends(get_product_image_service),
) -> Any:
    """Upload a product image to the public product bucket (admins only)"""
    if file is None:
        public_url, s3_key = await service.upload(current_user, None, None, None)
    else:
        content = await read_limited(file, service.max_bytes)
        public_url, s3_key = await service.upload(
            current_user, filename=file.filename, content_type=file.content_type, data=content
        )
    return {"success": True, "publicUrl": public_url, "s3Key": s3_key}


@router.delete("", response_model=SuccessResponse)
async def delete_product_image(
    s3Key: Optional[str] = None,
    current_user: Caller = Depends(get_current_user),
    service: ProductImageService = Depends(get_product_image_service),
) -> Any:
    await service.delete(current_user, s3Key)
    return {"success": True}
