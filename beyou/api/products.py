"""
FastAPI endpoints for the product catalog and inventory administration
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status

from ..core.security import require_admin
from ..schemas import (
    DeleteResponse,
    LowStockItem,
    ProductResponse,
    ProductUpdateRequest,
    SaleResponse,
    SetPrimaryImageRequest,
)
from ..services import ImageUpload, ProductService, SalesService
from .deps import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["products"])
admin_router = APIRouter(prefix="/admin/products", tags=["admin", "products"], dependencies=[Depends(require_admin)])


@router.get("", response_model=list[ProductResponse])
async def list_products(
    db: DbSession,
    category: Optional[str] = None,
    best_seller: Optional[bool] = None,
):
    """List products, most recently updated first"""
    products = await ProductService.list_products(db, category=category, best_seller=best_seller)
    return [ProductResponse.from_product(product) for product in products]


@router.get("/best-sellers", response_model=list[ProductResponse])
async def list_best_sellers(db: DbSession):
    products = await ProductService.list_products(db, best_seller=True)
    return [ProductResponse.from_product(product) for product in products]


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: DbSession):
    product = await ProductService.require_product(db, product_id)
    return ProductResponse.from_product(product)


@admin_router.get("/low-stock", response_model=list[LowStockItem])
async def list_low_stock(db: DbSession):
    """Products below the configured low-stock threshold"""
    products = await ProductService.list_low_stock(db)
    return [LowStockItem.model_validate(product) for product in products]


@admin_router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    db: DbSession,
    name: Annotated[str, Form()],
    category: Annotated[str, Form()],
    price: Annotated[str, Form()],
    stock_quantity: Annotated[int, Form()] = 0,
    description: Annotated[Optional[str], Form()] = None,
    subcategory: Annotated[Optional[str], Form()] = None,
    is_best_seller: Annotated[bool, Form()] = False,
    primary_index: Annotated[int, Form()] = 0,
    images: Annotated[Optional[list[UploadFile]], File(description="Product images")] = None,
):
    """Create a product; the image at primary_index becomes primary"""
    logger.info(f"🆕 Creating product '{name}' with {len(images or [])} image(s)")

    uploads = [
        ImageUpload(filename=image.filename or "", content=await image.read())
        for image in images or []
    ]
    product = await ProductService.create_product(
        db,
        name=name,
        category=category,
        price=price,
        stock_quantity=stock_quantity,
        description=description,
        subcategory=subcategory,
        is_best_seller=is_best_seller,
        images=uploads,
        primary_index=primary_index,
    )
    return ProductResponse.from_product(product)


@admin_router.patch("/{product_id}", response_model=ProductResponse)
async def update_product(product_id: str, request: ProductUpdateRequest, db: DbSession):
    product = await ProductService.update_product(db, product_id, request.model_dump(exclude_unset=True))
    return ProductResponse.from_product(product)


@admin_router.put("/{product_id}/primary-image", response_model=ProductResponse)
async def set_primary_image(product_id: str, request: SetPrimaryImageRequest, db: DbSession):
    product = await ProductService.set_primary_image(db, product_id, request.image_path)
    return ProductResponse.from_product(product)


@admin_router.delete("/{product_id}/images", response_model=DeleteResponse)
async def delete_product_image(
    product_id: str,
    image_path: Annotated[str, Query(min_length=1)],
    db: DbSession,
):
    orphaned = await ProductService.delete_image(db, product_id, image_path)
    return DeleteResponse(id=product_id, orphaned_file=orphaned)


@admin_router.get("/{product_id}/sales", response_model=list[SaleResponse])
async def list_product_sales(product_id: str, db: DbSession):
    """Sale ledger for one product, newest first"""
    await ProductService.require_product(db, product_id)
    sales = await SalesService.list_sales_for_product(db, product_id)
    return [SaleResponse.from_sale(sale) for sale in sales]


@admin_router.delete("/{product_id}")
async def delete_product(product_id: str, db: DbSession):
    """Delete a product and its images (refused once it has sales)"""
    logger.info(f"🗑️  DELETE product {product_id}")
    orphaned = await ProductService.delete_product(db, product_id)
    return {"id": product_id, "status": "deleted", "orphaned_files": orphaned}
