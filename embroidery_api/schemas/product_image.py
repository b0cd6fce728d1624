from pydantic import BaseModel


class ProductImageUploadResponse(BaseModel):
    success: bool = True
    publicUrl: str
    s3Key: str
