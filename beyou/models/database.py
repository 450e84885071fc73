"""
Database models for the catalog, sales ledger, storefront imagery and upload sessions

UUID string primary keys throughout; image bytes live on disk and rows only
hold the public path (see services.image_storage).
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp (columns are timezone-less)"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid4())


class Product(Base):
    """
    Sellable item with a stock counter.

    stock_quantity never goes negative: sales decrement it only inside the
    locked transaction in SalesService, and the CHECK constraint backs that up.
    """
    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    category: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    subcategory: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_best_seller: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )

    images: Mapped[List["ProductImage"]] = relationship(
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.position",
        lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
    )

    @property
    def primary_image(self) -> Optional["ProductImage"]:
        return next((image for image in self.images if image.is_primary), None)

    def __repr__(self):
        return f"<Product id={self.id} name={self.name} stock={self.stock_quantity}>"


class ProductImage(Base):
    """Image attached to a product; exactly one per product is flagged primary"""
    __tablename__ = "product_images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    image_path: Mapped[str] = mapped_column(String(255), nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)

    product: Mapped[Product] = relationship(back_populates="images")

    def __repr__(self):
        marker = "★" if self.is_primary else "·"
        return f"<ProductImage {marker} product_id={self.product_id} path={self.image_path}>"


class Sale(Base):
    """
    Append-only sale ledger entry.

    Written only by SalesService.record_sale, in the same transaction that
    decrements the product's stock. Never updated or deleted.
    """
    __tablename__ = "sales"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )
    quantity_sold: Mapped[int] = mapped_column(Integer, nullable=False)
    # Price snapshot taken under the row lock
    sale_price_per_unit: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    sale_date: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    __table_args__ = (
        CheckConstraint("quantity_sold > 0", name="ck_sales_quantity_positive"),
    )

    def __repr__(self):
        return f"<Sale id={self.id} product_id={self.product_id} qty={self.quantity_sold}>"


class Banner(Base):
    """Homepage banner image with optional caption"""
    __tablename__ = "banners"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    image_path: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    subtitle: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Banner id={self.id} path={self.image_path}>"


class CategoryImage(Base):
    """Cover image for a catalog category (one per category)"""
    __tablename__ = "category_images"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    category_name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    image_path: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
        nullable=False
    )


class UploadSession(Base):
    """
    Chunked upload in progress.

    Metadata is persisted here; the base64 chunk payloads live on disk under
    CHUNK_DIR/<session_id>/. Rows past expires_at are purged together with
    their chunk directory.
    """
    __tablename__ = "upload_sessions"

    session_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    total_chunks: Mapped[int] = mapped_column(Integer, nullable=False)
    filename: Mapped[str] = mapped_column(String(255), nullable=False, default="upload.jpg")
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    subtitle: Mapped[str] = mapped_column(Text, nullable=False, default="")
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_upload_sessions_expires", "expires_at"),
    )

    def __repr__(self):
        return f"<UploadSession id={self.session_id} total={self.total_chunks} expires={self.expires_at}>"
