"""
Pydantic schemas for products, banners and category images
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field

DEFAULT_PRIMARY_IMAGE_URL = "/images/placeholder.png"


class BannerResponse(BaseModel):
    """Persisted banner record"""
    id: str
    image_path: str
    title: Optional[str]
    subtitle: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class DeleteResponse(BaseModel):
    """Row deleted; orphaned_file names a stored image that could not be removed"""
    id: str
    status: str = "deleted"
    orphaned_file: Optional[str] = None


class CategoryImageResponse(BaseModel):
    category_name: str
    image_path: str
    updated_at: datetime

    class Config:
        from_attributes = True


class ProductImageResponse(BaseModel):
    id: str
    image_path: str
    is_primary: bool

    class Config:
        from_attributes = True


class ProductResponse(BaseModel):
    """Catalog view of a product"""
    id: str
    name: str
    description: Optional[str]
    price: float
    stock_quantity: int
    category: str
    subcategory: Optional[str]
    is_best_seller: bool
    primary_image_url: str
    image_urls: list[str]
    images: list[ProductImageResponse]
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_product(cls, product) -> "ProductResponse":
        primary = product.primary_image
        return cls(
            id=product.id,
            name=product.name,
            description=product.description,
            price=float(product.price),
            stock_quantity=product.stock_quantity,
            category=product.category,
            subcategory=product.subcategory,
            is_best_seller=product.is_best_seller,
            primary_image_url=primary.image_path if primary else DEFAULT_PRIMARY_IMAGE_URL,
            image_urls=[image.image_path for image in product.images],
            images=[ProductImageResponse.model_validate(image) for image in product.images],
            created_at=product.created_at,
            updated_at=product.updated_at,
        )


class ProductUpdateRequest(BaseModel):
    """Partial product update; omitted fields are left unchanged"""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[float] = None
    stock_quantity: Optional[int] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    subcategory: Optional[str] = None
    is_best_seller: Optional[bool] = None


class SetPrimaryImageRequest(BaseModel):
    image_path: str = Field(..., min_length=1)


class LowStockItem(BaseModel):
    id: str
    name: str
    stock_quantity: int
    category: str

    class Config:
        from_attributes = True
