"""Schemas module exports"""
from .catalog import (
    BannerResponse,
    CategoryImageResponse,
    DeleteResponse,
    LowStockItem,
    ProductImageResponse,
    ProductResponse,
    ProductUpdateRequest,
    SetPrimaryImageRequest,
)
from .sales import (
    DashboardResponse,
    RecentSaleItem,
    RecordSaleRequest,
    RecordSaleResponse,
    SaleResponse,
    SalesOverviewPoint,
)
from .uploads import (
    ChunkProgressResponse,
    ChunkUploadRequest,
    UploadErrorResponse,
    UploadSessionStatus,
)

__all__ = [
    "BannerResponse",
    "CategoryImageResponse",
    "DeleteResponse",
    "LowStockItem",
    "ProductImageResponse",
    "ProductResponse",
    "ProductUpdateRequest",
    "SetPrimaryImageRequest",
    "DashboardResponse",
    "RecentSaleItem",
    "RecordSaleRequest",
    "RecordSaleResponse",
    "SaleResponse",
    "SalesOverviewPoint",
    "ChunkProgressResponse",
    "ChunkUploadRequest",
    "UploadErrorResponse",
    "UploadSessionStatus",
]
