from typing import Any, Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile

from ....core.exceptions import InvalidInput
from ....schemas.order_attachment import (
    OrderAttachment,
    OrderAttachmentDownloadResponse,
    OrderAttachmentList,
    OrderAttachmentUploadResponse,
    SuccessResponse,
)
from ....services.attachment_service import AttachmentService, Caller, read_limited
from ...deps import get_attachment_service, get_current_user

router = APIRouter()


@router.post("", response_model=OrderAttachmentUploadResponse)
async def upload_order_attachment(
    file: Optional[UploadFile] = File(None),
    orderId: Optional[str] = Form(None),
    current_user: Caller = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> Any:
    """Upload a file to an order and persist its metadata"""
    if file is None or not orderId:
        raise InvalidInput("Missing file or orderId")

    content = await read_limited(file, service.max_bytes)
    attachment = await service.upload(
        current_user,
        orderId,
        filename=file.filename,
        content_type=file.content_type,
        data=content,
    )
    return {"success": True, "attachment": OrderAttachment.model_validate(attachment)}


@router.get("", response_model=None)
async def get_order_attachment(
    attachmentId: Optional[str] = None,
    orderId: Optional[str] = None,
    current_user: Caller = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> Any:
    """Signed download URL for one attachment, or the attachments of an order"""
    if attachmentId:
        url, attachment = await service.get_download(current_user, attachmentId)
        return OrderAttachmentDownloadResponse(
            downloadUrl=url, attachment=OrderAttachment.model_validate(attachment)
        )
    if orderId:
        attachments = await service.list_for_order(current_user, orderId)
        return OrderAttachmentList(
            attachments=[OrderAttachment.model_validate(a) for a in attachments]
        )
    raise InvalidInput("Missing attachmentId")


@router.delete("", response_model=SuccessResponse)
async def delete_order_attachment(
    attachmentId: Optional[str] = None,
    current_user: Caller = Depends(get_current_user),
    service: AttachmentService = Depends(get_attachment_service),
) -> Any:
    if not attachmentId:
        raise InvalidInput("Missing attachmentId")
    await service.delete(current_user, attachmentId)
    return {"success": True}
