"""
FastAPI endpoints for homepage banners, including chunked uploads
"""
import logging
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import JSONResponse

from ..core.exceptions import BeYouError
from ..core.security import require_admin
from ..schemas import (
    BannerResponse,
    ChunkProgressResponse,
    ChunkUploadRequest,
    DeleteResponse,
    UploadErrorResponse,
    UploadSessionStatus,
)
from ..services import BannerService, chunked_uploads
from .deps import DbSession, parse_payload, read_json_body

logger = logging.getLogger(__name__)

router = APIRouter(tags=["banners"])
admin_router = APIRouter(prefix="/admin/banners", tags=["admin", "banners"], dependencies=[Depends(require_admin)])


QUERY_INT_FIELDS = ("chunkIndex", "totalChunks")


def query_int(value: str):
    """Query values arrive as text; leave non-integers for schema validation to reject"""
    try:
        return int(value)
    except ValueError:
        return value


def upload_error(status_code: int, message: str, error: Optional[str] = None) -> JSONResponse:
    """Error shape used by the upload endpoints: {message, error?}"""
    body = UploadErrorResponse(message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def receive_chunk(db, payload: dict):
    """Shared body of the JSON and query-string chunk endpoints"""
    try:
        chunk = parse_payload(ChunkUploadRequest, payload)
        result = await chunked_uploads.receive_chunk(db, chunk)
    except BeYouError as e:
        return upload_error(e.status_code, e.message, e.detail)
    except Exception as e:
        logger.error(f"❌ Chunked upload error: {e}")
        return upload_error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", str(e))

    if result.complete:
        return BannerResponse.model_validate(result.banner)

    return ChunkProgressResponse(
        session_id=result.session_id,
        received_chunks=result.received_chunks,
        total_chunks=result.total_chunks,
    )


@router.get("/banners", response_model=list[BannerResponse])
async def list_banners(db: DbSession):
    """List banners, newest first"""
    banners = await BannerService.list_banners(db)
    return [BannerResponse.model_validate(banner) for banner in banners]


@admin_router.post("", response_model=BannerResponse, status_code=status.HTTP_201_CREATED)
async def upload_banner(
    file: Annotated[UploadFile, File(description="Banner image")],
    db: DbSession,
    title: Annotated[str, Form()] = "",
    subtitle: Annotated[str, Form()] = "",
):
    """Single-request banner upload (multipart form)"""
    logger.info(f"📤 Banner upload: {file.filename}")
    content = await file.read()
    banner = await BannerService.create_banner(
        db,
        image_bytes=content,
        original_filename=file.filename or "",
        title=title,
        subtitle=subtitle,
    )
    return BannerResponse.model_validate(banner)


@admin_router.post("/chunked", response_model=None)
async def upload_banner_chunk(request: Request, db: DbSession):
    """
    Receive one base64 chunk of a banner image (JSON body).

    Returns progress until the last missing chunk arrives, then the created banner.
    """
    try:
        payload = await read_json_body(request)
    except BeYouError as e:
        return upload_error(e.status_code, e.message, e.detail)
    return await receive_chunk(db, payload)


@admin_router.post("/chunked-query", response_model=None)
async def upload_banner_chunk_query(request: Request, db: DbSession):
    """Same contract as /chunked with every field carried in the query string"""
    payload = dict(request.query_params)
    for field in QUERY_INT_FIELDS:
        if field in payload:
            payload[field] = query_int(payload[field])
    return await receive_chunk(db, payload)


@admin_router.get("/chunked/{session_id}", response_model=UploadSessionStatus)
async def get_chunk_session(session_id: str, db: DbSession):
    """Which chunks of a session have arrived"""
    session_status = await chunked_uploads.get_status(db, session_id)
    return UploadSessionStatus(
        session_id=session_status.session_id,
        total_chunks=session_status.total_chunks,
        received_chunks=len(session_status.received_indices),
        received_indices=session_status.received_indices,
        expires_at=session_status.expires_at,
    )


@admin_router.delete("/chunked/{session_id}")
async def cancel_chunk_session(session_id: str, db: DbSession):
    await chunked_uploads.cancel(db, session_id)
    return {"sessionId": session_id, "status": "cancelled"}


@admin_router.delete("/{banner_id}", response_model=DeleteResponse)
async def delete_banner(banner_id: str, db: DbSession):
    """Delete a banner; the image file is removed best-effort"""
    logger.info(f"🗑️  DELETE banner {banner_id}")
    orphaned = await BannerService.delete_banner(db, banner_id)
    return DeleteResponse(id=banner_id, orphaned_file=orphaned)
