from typing import Any, Optional
from fastapi import APIRouter, Depends, File, UploadFile

from ....schemas.order_attachment import SuccessResponse
from ....schemas.stock_design import StockDesignFileUploadResponse, StockDesignImageUploadResponse
from ....services.attachment_service import Caller, StockDesignImageService, read_limited
from ....services.stock_design_service import StockDesignFileService
from ...deps import get_current_user, get_stock_design_file_service, get_stock_design_image_service

files_router = APIRouter()
images_router = APIRouter()


@files_router.post("", response_model=StockDesignFileUploadResponse)
async def upload_stock_design_file(
    stockDesignId: Optional[str] = None,
    file: Optional[UploadFile] = File(None),
    current_user: Caller = Depends(get_current_user),
    service: StockDesignFileService = Depends(get_stock_design_file_service),
) -> Any:
    """Attach the downloadable ZIP to a stock design (admins only)"""
    content = await read_limited(file, service.max_bytes) if file is not None else None
    design = await service.upload(
        current_user,
        stockDesignId,
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        data=content,
    )
    return {
        "success": True,
        "filePath": design.attachment_url,
        "fileName": design.attachment_filename,
        "fileSize": design.attachment_size,
    }


@files_router.delete("", response_model=SuccessResponse)
async def delete_stock_design_file(
    stockDesignId: Optional[str] = None,
    current_user: Caller = Depends(get_current_user),
    service: StockDesignFileService = Depends(get_stock_design_file_service),
) -> Any:
    await service.delete(current_user, stockDesignId)
    return {"success": True}


@images_router.post("", response_model=StockDesignImageUploadResponse)
async def upload_stock_design_image(
    file: Optional[UploadFile] = File(None),
    current_user: Caller = Depends(get_current_user),
    service: StockDesignImageService = Depends(get_stock_design_image_service),
) -> Any:
    """Upload a catalogue image for a stock design (admins only)"""
    content = await read_limited(file, service.max_bytes) if file is not None else None
    public_url, key = await service.upload(
        current_user,
        filename=file.filename if file is not None else None,
        content_type=file.content_type if file is not None else None,
        data=content,
    )
    return {"success": True, "publicUrl": public_url, "storagePath": key}


@images_router.delete("", response_model=SuccessResponse)
async def delete_stock_design_image(
    storagePath: Optional[str] = None,
    current_user: Caller = Depends(get_current_user),
    service: StockDesignImageService = Depends(get_stock_design_image_service),
) -> Any:
    await service.delete(current_user, storagePath)
    return {"success": True}
