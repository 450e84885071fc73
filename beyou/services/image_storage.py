"""
Filesystem image storage for uploaded product, banner, category and profile images
"""
import logging
import os
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional
from uuid import uuid4

from ..core.config import settings
from ..core.exceptions import ImageStorageError, InvalidInputError

logger = logging.getLogger(__name__)

PUBLIC_PREFIX = "/uploads"


@dataclass(frozen=True)
class StoredImage:
    filename: str
    path: str  # public path, e.g. /uploads/banners/<uuid>.jpg


class ImageStorageService:
    """
    Writes image bytes under <root>/<category>/<uuid><ext>.

    Key features:
    - Category allow-list (banners, products, categories, profiles)
    - Extension allow-list checked before anything touches disk
    - UUID filenames, so uploads never collide or overwrite each other
    - Idempotent delete: an already-missing file counts as deleted
    """
    
    VALID_CATEGORIES = ("products", "banners", "categories", "profiles")
    ALLOWED_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp", ".avif"})
    
    def __init__(self, root: str):
        self.root = Path(root)
    
    def ensure_directories(self) -> None:
        """Create the category subdirectories if they don't exist"""
        for category in self.VALID_CATEGORIES:
            (self.root / category).mkdir(parents=True, exist_ok=True)
        logger.info(f"🗄️  Upload directories ready under {self.root}")
    
    def validate_filename(self, original_filename: str) -> str:
        """Return the lower-cased extension, or raise if it isn't an allowed image type"""
        extension = PurePosixPath(original_filename or "").suffix.lower()
        if extension not in self.ALLOWED_EXTENSIONS:
            raise InvalidInputError(
                f"Unsupported image type '{extension or original_filename}'",
                detail=f"Allowed: {', '.join(sorted(self.ALLOWED_EXTENSIONS))}"
            )
        return extension
    
    def save(self, content: bytes, original_filename: str, category: str) -> StoredImage:
        """
        Persist content and return its public path.

        Raises InvalidInputError for a bad category/extension and
        ImageStorageError if the write itself fails.
        """
        if category not in self.VALID_CATEGORIES:
            raise InvalidInputError(f"Invalid upload directory '{category}'")
        extension = self.validate_filename(original_filename)
        
        filename = f"{uuid4()}{extension}"
        target_dir = self.root / category
        target = target_dir / filename
        
        try:
            target_dir.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)
        except OSError as e:
            logger.error(f"❌ Failed to write {target}: {e}")
            raise ImageStorageError("Failed to store image", detail=str(e)) from e
        
        public_path = f"{PUBLIC_PREFIX}/{category}/{filename}"
        logger.info(f"📤 Stored {len(content)} bytes at {public_path}")
        return StoredImage(filename=filename, path=public_path)
    
    def resolve(self, public_path: str) -> Path:
        """Map a public /uploads/... path to its location on disk, refusing escapes from the root"""
        relative = public_path
        if relative.startswith(PUBLIC_PREFIX + "/"):
            relative = relative[len(PUBLIC_PREFIX) + 1:]
        relative = relative.lstrip("/")
        
        root = self.root.resolve()
        candidate = (root / relative).resolve()
        if candidate == root or root not in candidate.parents:
            raise InvalidInputError(f"Invalid file path '{public_path}'")
        return candidate
    
    def exists(self, public_path: str) -> bool:
        return self.resolve(public_path).is_file()
    
    def read(self, public_path: str) -> bytes:
        return self.resolve(public_path).read_bytes()
    
    def delete(self, public_path: str) -> bool:
        """
        Delete a stored image.

        Returns True if a file was removed, False if it was already gone.
        Any other OS failure (permissions, I/O) raises ImageStorageError so
        callers can tell an orphaned file apart from a no-op.
        """
        path = self.resolve(public_path)
        try:
            os.remove(path)
        except FileNotFoundError:
            logger.info(f"♻️  {public_path} already absent, nothing to delete")
            return False
        except OSError as e:
            logger.error(f"❌ Failed to delete {public_path}: {e}")
            raise ImageStorageError(f"Failed to delete {public_path}", detail=str(e)) from e
        
        logger.info(f"🗑️  Deleted {public_path}")
        return True

    def release(self, public_path: Optional[str]) -> Optional[str]:
        """
        Best-effort delete used when the owning row is being removed.

        Never raises; returns the path when the file had to be left behind
        (orphaned) so the caller can report it.
        """
        if not public_path:
            return None
        try:
            self.delete(public_path)
        except (ImageStorageError, InvalidInputError) as e:
            logger.warning(f"⚠️ Orphaned file {public_path}: {e.message}")
            return public_path
        return None


# Singleton instance
image_storage = ImageStorageService(settings.UPLOAD_DIR)
