"""Services module exports"""
from .image_storage import image_storage, ImageStorageService, StoredImage
from .banners import BannerService
from .category_images import CategoryImageService
from .chunked_upload import chunked_uploads, ChunkedUploadService, ChunkResult
from .products import ProductService, ImageUpload, validate_primary_invariant
from .sales import SalesService

__all__ = [
    "image_storage",
    "ImageStorageService",
    "StoredImage",
    "BannerService",
    "CategoryImageService",
    "chunked_uploads",
    "ChunkedUploadService",
    "ChunkResult",
    "ProductService",
    "ImageUpload",
    "validate_primary_invariant",
    "SalesService",
]
