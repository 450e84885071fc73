"""
FastAPI endpoints for category cover images
"""
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile

from ..core.exceptions import NotFoundError
from ..core.security import require_admin
from ..schemas import CategoryImageResponse, DeleteResponse
from ..services import CategoryImageService
from .deps import DbSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/category-images", tags=["categories"])
admin_router = APIRouter(
    prefix="/admin/category-images",
    tags=["admin", "categories"],
    dependencies=[Depends(require_admin)]
)


@router.get("/{category_name}", response_model=CategoryImageResponse)
async def get_category_image(category_name: str, db: DbSession):
    record = await CategoryImageService.get(db, category_name)
    if not record:
        raise NotFoundError("Category image not found")
    return CategoryImageResponse.model_validate(record)


@admin_router.put("/{category_name}", response_model=CategoryImageResponse)
async def put_category_image(
    category_name: str,
    file: Annotated[UploadFile, File(description="Category image")],
    db: DbSession,
):
    """Set or replace the category's image"""
    logger.info(f"🖼️  PUT category image '{category_name}': {file.filename}")
    record, orphaned = await CategoryImageService.upsert(
        db, category_name, await file.read(), file.filename or ""
    )
    if orphaned:
        logger.warning(f"⚠️ Previous image for '{category_name}' left on disk: {orphaned}")
    return CategoryImageResponse.model_validate(record)


@admin_router.delete("/{category_name}", response_model=DeleteResponse)
async def delete_category_image(category_name: str, db: DbSession):
    record_id, orphaned = await CategoryImageService.delete(db, category_name)
    return DeleteResponse(id=record_id, orphaned_file=orphaned)
