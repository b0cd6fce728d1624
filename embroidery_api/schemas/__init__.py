from .order_attachment import (
    OrderAttachment, OrderAttachmentUploadResponse, OrderAttachmentDownloadResponse,
    OrderAttachmentList, SuccessResponse,
)
from .product_image import ProductImageUploadResponse
from .payment import PaymentProduct, CheckoutUrlRequest, CheckoutUrlResponse
from .stock_design import StockDesignFileUploadResponse, StockDesignImageUploadResponse
from .invoice import GenerateInvoiceRequest, GeneratedInvoice, GenerateInvoiceResponse
