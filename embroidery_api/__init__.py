"""Embroidery portal API: order attachments, product images and 2Checkout payments."""

__version__ = "1.0.0"
