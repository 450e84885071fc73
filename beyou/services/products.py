"""
Product catalog and inventory management
"""
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import InvalidInputError, NotFoundError
from ..core.revalidation import PRODUCT_PAGES, page_revalidator
from ..models import Product, ProductImage, Sale
from .image_storage import image_storage

logger = logging.getLogger(__name__)


@dataclass
class ImageUpload:
    filename: str
    content: bytes


def to_price(value) -> Decimal:
    """Validate and normalise a price to two decimal places"""
    try:
        price = Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise InvalidInputError(f"Invalid price '{value}'")
    if price < 0:
        raise InvalidInputError("Price cannot be negative")
    return price


def validate_primary_invariant(product: Product) -> None:
    """A product with images has exactly one primary image"""
    if not product.images:
        return
    primaries = [image for image in product.images if image.is_primary]
    if len(primaries) != 1:
        raise InvalidInputError(
            f"Product '{product.name}' must have exactly one primary image, found {len(primaries)}"
        )


class ProductService:
    """Business logic for the product catalog"""

    @staticmethod
    async def list_products(
        session: AsyncSession,
        category: Optional[str] = None,
        best_seller: Optional[bool] = None
    ) -> list[Product]:
        """Products, most recently updated first"""
        stmt = select(Product).order_by(Product.updated_at.desc())
        if category:
            stmt = stmt.where(Product.category == category)
        if best_seller is not None:
            stmt = stmt.where(Product.is_best_seller == best_seller)

        result = await session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    async def get_product(session: AsyncSession, product_id: str) -> Optional[Product]:
        result = await session.execute(select(Product).where(Product.id == product_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def require_product(session: AsyncSession, product_id: str) -> Product:
        product = await ProductService.get_product(session, product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    async def get_most_recent(session: AsyncSession) -> Optional[Product]:
        result = await session.execute(
            select(Product).order_by(Product.created_at.desc()).limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def list_low_stock(session: AsyncSession, threshold: Optional[int] = None) -> list[Product]:
        """Products below the low-stock threshold, emptiest first"""
        limit = settings.LOW_STOCK_THRESHOLD if threshold is None else threshold
        result = await session.execute(
            select(Product)
            .where(Product.stock_quantity < limit)
            .order_by(Product.stock_quantity.asc(), Product.name.asc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_product(
        session: AsyncSession,
        name: str,
        category: str,
        price,
        stock_quantity: int,
        description: Optional[str] = None,
        subcategory: Optional[str] = None,
        is_best_seller: bool = False,
        images: Sequence[ImageUpload] = (),
        primary_index: int = 0
    ) -> Product:
        """
        Create a product with its images in one transaction.

        The image at primary_index becomes the primary image. Files written
        before a failed commit are released again.
        """
        if not name or not name.strip():
            raise InvalidInputError("Product name is required")
        if not category or not category.strip():
            raise InvalidInputError("Product category is required")
        if stock_quantity is None or stock_quantity < 0:
            raise InvalidInputError("Stock quantity cannot be negative")
        if images and not 0 <= primary_index < len(images):
            raise InvalidInputError(f"primary_index {primary_index} out of range for {len(images)} images")
        for upload in images:
            image_storage.validate_filename(upload.filename)

        product = Product(
            name=name.strip(),
            category=category.strip(),
            subcategory=subcategory,
            description=description,
            price=to_price(price),
            stock_quantity=stock_quantity,
            is_best_seller=is_best_seller,
            images=[],
        )

        stored_paths = []
        try:
            for position, upload in enumerate(images):
                stored = image_storage.save(upload.content, upload.filename, "products")
                stored_paths.append(stored.path)
                product.images.append(ProductImage(
                    image_path=stored.path,
                    is_primary=position == primary_index,
                    position=position,
                ))
            validate_primary_invariant(product)

            session.add(product)
            await session.commit()
        except Exception:
            await session.rollback()
            for path in stored_paths:
                image_storage.release(path)
            raise

        page_revalidator.mark_stale(*PRODUCT_PAGES)
        logger.info(f"✅ Created product {product.id} '{product.name}' with {len(stored_paths)} image(s)")
        return product

    @staticmethod
    async def update_product(session: AsyncSession, product_id: str, changes: dict) -> Product:
        """Apply a partial update; price and stock stay non-negative"""
        product = await ProductService.require_product(session, product_id)

        if "price" in changes and changes["price"] is not None:
            changes["price"] = to_price(changes["price"])
        if changes.get("stock_quantity") is not None and changes["stock_quantity"] < 0:
            raise InvalidInputError("Stock quantity cannot be negative")

        for field, value in changes.items():
            if value is None and field in ("name", "price", "stock_quantity", "category", "is_best_seller"):
                continue
            setattr(product, field, value)

        await session.commit()
        await session.refresh(product)
        page_revalidator.mark_stale(*PRODUCT_PAGES)
        logger.info(f"✏️  Updated product {product_id}: {sorted(changes)}")
        return product

    @staticmethod
    async def set_primary_image(session: AsyncSession, product_id: str, image_path: str) -> Product:
        """Make image_path the product's only primary image"""
        product = await ProductService.require_product(session, product_id)

        if not any(image.image_path == image_path for image in product.images):
            raise NotFoundError("Image not found for this product")

        for image in product.images:
            image.is_primary = image.image_path == image_path
        validate_primary_invariant(product)

        await session.commit()
        page_revalidator.mark_stale(*PRODUCT_PAGES)
        logger.info(f"★ Primary image of {product_id} set to {image_path}")
        return product

    @staticmethod
    async def delete_image(session: AsyncSession, product_id: str, image_path: str) -> Optional[str]:
        """
        Remove one product image; returns the orphaned path if the file stayed behind.

        The primary image can only be removed once it's the last image.
        """
        product = await ProductService.require_product(session, product_id)

        image = next((image for image in product.images if image.image_path == image_path), None)
        if image is None:
            raise NotFoundError("Image not found for this product")
        if image.is_primary and len(product.images) > 1:
            raise InvalidInputError("Cannot delete primary image. Please set another image as primary first.")

        product.images.remove(image)
        await session.commit()

        page_revalidator.mark_stale(*PRODUCT_PAGES)
        return image_storage.release(image_path)

    @staticmethod
    async def delete_product(session: AsyncSession, product_id: str) -> list[str]:
        """
        Delete a product and its images; returns any orphaned file paths.

        Products with sales are kept, since the sale ledger references them.
        """
        product = await ProductService.require_product(session, product_id)

        sale_count = await session.scalar(
            select(func.count()).select_from(Sale).where(Sale.product_id == product_id)
        )
        if sale_count:
            raise InvalidInputError(f"Product has {sale_count} recorded sale(s) and cannot be deleted")

        image_paths = [image.image_path for image in product.images]
        await session.delete(product)
        await session.commit()

        orphaned = [path for path in map(image_storage.release, image_paths) if path]
        page_revalidator.mark_stale(*PRODUCT_PAGES)
        logger.info(f"🗑️  Deleted product {product_id} ({len(image_paths)} image(s), {len(orphaned)} orphaned)")
        return orphaned
