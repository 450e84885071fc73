"""
Page-cache invalidation signals.

Mutations mark the storefront/admin pages that render the changed data as
stale; whatever renders those pages consumes the mark and rebuilds.
"""
import logging
from datetime import datetime, timezone
from typing import Dict

logger = logging.getLogger(__name__)


class PageRevalidator:
    """In-process registry of stale page paths"""

    def __init__(self):
        self._stale: Dict[str, datetime] = {}

    def mark_stale(self, *paths: str) -> None:
        now = datetime.now(timezone.utc)
        for path in paths:
            self._stale[path] = now
            logger.info(f"♻️  Marked {path} stale")

    def is_stale(self, path: str) -> bool:
        return path in self._stale

    def consume(self, path: str) -> bool:
        """Clear the stale mark for path; returns whether it was stale"""
        return self._stale.pop(path, None) is not None

    def snapshot(self) -> Dict[str, datetime]:
        return dict(self._stale)

    def clear(self) -> None:
        self._stale.clear()


# Singleton instance
page_revalidator = PageRevalidator()

PRODUCT_PAGES = ("/products", "/admin/inventory")
