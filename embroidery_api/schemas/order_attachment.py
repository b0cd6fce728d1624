from typing import List, Optional
from pydantic import BaseModel, ConfigDict
from datetime import datetime


class OrderAttachment(BaseModel):
    id: str
    order_id: str
    original_filename: str
    stored_filename: str
    file_size: int
    mime_type: str
    s3_key: str
    uploaded_by: str
    uploaded_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class OrderAttachmentUploadResponse(BaseModel):
    success: bool = True
    attachment: OrderAttachment


class OrderAttachmentDownloadResponse(BaseModel):
    downloadUrl: str
    attachment: OrderAttachment


class OrderAttachmentList(BaseModel):
    attachments: List[OrderAttachment]


class SuccessResponse(BaseModel):
    success: bool = True
