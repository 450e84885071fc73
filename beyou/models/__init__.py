"""Models module exports"""
from .database import (
    Banner,
    CategoryImage,
    Product,
    ProductImage,
    Sale,
    UploadSession,
    utcnow,
)

__all__ = [
    "Banner",
    "CategoryImage",
    "Product",
    "ProductImage",
    "Sale",
    "UploadSession",
    "utcnow",
]
