from fastapi import APIRouter

from .endpoints import invoices, order_attachments, payments, product_images, stock_designs

api_router = APIRouter()

api_router.include_router(order_attachments.router, prefix="/order-attachments", tags=["order-attachments"])
api_router.include_router(product_images.router, prefix="/product-images", tags=["product-images"])
api_router.include_router(stock_designs.files_router, prefix="/stock-design-files", tags=["stock-designs"])
api_router.include_router(stock_designs.images_router, prefix="/stock-design-images", tags=["stock-designs"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["invoices"])
api_router.include_router(payments.router, prefix="/payments", tags=["payments"])
