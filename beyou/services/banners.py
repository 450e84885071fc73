"""
Homepage banners: image on disk, caption in the database
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.exceptions import NotFoundError
from ..models import Banner
from .image_storage import image_storage

logger = logging.getLogger(__name__)


class BannerService:
    """Business logic for banner management"""

    @staticmethod
    async def list_banners(session: AsyncSession) -> list[Banner]:
        """All banners, newest first"""
        result = await session.execute(
            select(Banner).order_by(Banner.created_at.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def get_banner(session: AsyncSession, banner_id: str) -> Optional[Banner]:
        result = await session.execute(select(Banner).where(Banner.id == banner_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def create_banner(
        session: AsyncSession,
        image_bytes: bytes,
        original_filename: str,
        title: Optional[str] = None,
        subtitle: Optional[str] = None
    ) -> Banner:
        """
        Store the image and insert the banner row.

        If the insert fails the freshly written file is removed again.
        """
        stored = image_storage.save(image_bytes, original_filename, "banners")

        banner = Banner(image_path=stored.path, title=title or "", subtitle=subtitle or "")
        session.add(banner)
        try:
            await session.commit()
        except Exception:
            await session.rollback()
            image_storage.release(stored.path)
            raise

        logger.info(f"✅ Created banner {banner.id} ({len(image_bytes)} bytes, {stored.path})")
        return banner

    @staticmethod
    async def delete_banner(session: AsyncSession, banner_id: str) -> Optional[str]:
        """
        Delete a banner row and its image.

        The row is deleted even when the file can't be; returns the orphaned
        path in that case, None otherwise.
        """
        banner = await BannerService.get_banner(session, banner_id)
        if not banner:
            raise NotFoundError("Banner not found")

        image_path = banner.image_path
        await session.delete(banner)
        await session.commit()

        orphaned = image_storage.release(image_path)
        logger.info(f"🗑️  Deleted banner {banner_id}")
        return orphaned
