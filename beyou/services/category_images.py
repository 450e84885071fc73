"""
Category cover images (one per category name)
"""
import logging
from typing import Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import InvalidInputError, NotFoundError
from ..models import CategoryImage
from .image_storage import image_storage

logger = logging.getLogger(__name__)


class CategoryImageService:

    @staticmethod
    async def get(session: AsyncSession, category_name: str) -> Optional[CategoryImage]:
        result = await session.execute(
            select(CategoryImage).where(CategoryImage.category_name == category_name)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def upsert(
        session: AsyncSession,
        category_name: str,
        image_bytes: bytes,
        original_filename: str
    ) -> Tuple[CategoryImage, Optional[str]]:
        """
        Replace (or create) the category's image.

        Returns (record, orphaned_path); the previous file is released
        only after the new path is committed.
        """
        category_name = (category_name or "").strip()
        if not category_name:
            raise InvalidInputError("Category name is required")

        stored = image_storage.save(image_bytes, original_filename, "categories")

        record = await CategoryImageService.get(session, category_name)
        previous_path = record.image_path if record else None
        if record:
            record.image_path = stored.path
        else:
            record = CategoryImage(category_name=category_name, image_path=stored.path)
            session.add(record)

        try:
            await session.commit()
        except Exception:
            await session.rollback()
            image_storage.release(stored.path)
            raise
        await session.refresh(record)

        logger.info(f"🖼️  Category '{category_name}' image set to {stored.path}")
        return record, image_storage.release(previous_path)

    @staticmethod
    async def delete(session: AsyncSession, category_name: str) -> Tuple[str, Optional[str]]:
        """Delete the category image row; returns (id, orphaned_path)"""
        record = await CategoryImageService.get(session, category_name)
        if not record:
            raise NotFoundError("Category image not found")

        record_id, image_path = record.id, record.image_path
        await session.delete(record)
        await session.commit()

        logger.info(f"🗑️  Deleted image for category '{category_name}'")
        return record_id, image_storage.release(image_path)
