from pydantic import BaseModel


class StockDesignFileUploadResponse(BaseModel):
    success: bool = True
    filePath: str
    fileName: str
    fileSize: int


class StockDesignImageUploadResponse(BaseModel):
    success: bool = True
    publicUrl: str
    storagePath: str
