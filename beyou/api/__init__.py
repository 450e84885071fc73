"""API module exports"""
from fastapi import APIRouter

from . import banners, category_images, products, sales

router = APIRouter(prefix="/api")
router.include_router(banners.router)
router.include_router(banners.admin_router)
router.include_router(category_images.router)
router.include_router(category_images.admin_router)
router.include_router(products.router)
router.include_router(products.admin_router)
router.include_router(sales.router)

__all__ = ["router"]
