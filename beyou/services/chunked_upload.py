"""
Chunked banner uploads

Large images are sliced client-side into base64 text chunks and posted one
request at a time, in any order, under a client-chosen session id. Once every
index of the session has arrived the chunks are joined in index order,
decoded and handed to BannerService.

Session metadata lives in the upload_sessions table and the chunk payloads
on disk (CHUNK_DIR/<session_id>/chunk_<index>), so in-flight uploads survive
a restart. Each received chunk pushes the session's expiry forward; expired
sessions are purged before every chunk and at startup.
"""
import base64
import logging
import os
import re
import shutil
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional
from uuid import uuid4

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.exceptions import (
    InvalidInputError,
    NotFoundError,
    UploadAssemblyError,
    UploadSessionConflictError,
)
from ..models import Banner, UploadSession, utcnow
from ..schemas import ChunkUploadRequest
from .banners import BannerService
from .image_storage import image_storage

logger = logging.getLogger(__name__)

SESSION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,128}$")
CHUNK_FILE_PATTERN = re.compile(r"^chunk_(\d+)$")

DEFAULT_FILENAME = "upload.jpg"


@dataclass
class ChunkResult:
    """Outcome of one chunk: progress counters, plus the banner once assembled"""
    session_id: str
    received_chunks: int
    total_chunks: int
    banner: Optional[Banner] = None

    @property
    def complete(self) -> bool:
        return self.banner is not None


@dataclass
class SessionStatus:
    session_id: str
    total_chunks: int
    received_indices: list[int]
    expires_at: datetime


class ChunkedUploadService:
    """Reassembles chunked uploads keyed by session id"""

    def __init__(self, chunk_dir: str, ttl_seconds: int):
        self.chunk_dir = Path(chunk_dir)
        self.ttl = timedelta(seconds=ttl_seconds)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def receive_chunk(self, session: AsyncSession, request: ChunkUploadRequest) -> ChunkResult:
        """
        Store one chunk and assemble the upload when it completes the session.

        Flow:
        1. Validate required fields (nothing is touched on rejection)
        2. Purge expired sessions
        3. Open the session on first sight, or check it against the stored one
        4. Push the expiry forward, then write the chunk (last write for an
           index wins); a vanished row means a concurrent chunk claimed it
        5. If every index is present: claim, join, decode, persist, discard
        """
        self._validate(request)
        session_id = request.session_id

        await self.purge_expired(session)

        upload = await self._get_session(session, session_id)
        if upload is None:
            upload = await self._open_session(session, request)
        else:
            self._check_against_session(upload, request)

        total_chunks = upload.total_chunks
        touched = await session.execute(
            update(UploadSession)
            .where(UploadSession.session_id == session_id)
            .values(expires_at=utcnow() + self.ttl)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
        if touched.rowcount == 0:
            # A concurrent request already claimed the complete session
            logger.info(f"📦 Session {session_id} is already being assembled")
            return ChunkResult(session_id, total_chunks, total_chunks)

        self._write_chunk(session_id, request.chunk_index, request.chunk_data)
        received = len(self._received_indices(session_id, total_chunks))
        logger.info(f"📦 Session {session_id}: {received}/{total_chunks} chunks received")

        if received < total_chunks:
            return ChunkResult(session_id, received, total_chunks)

        banner = await self._assemble(session, upload)
        if banner is None:
            return ChunkResult(session_id, total_chunks, total_chunks)
        return ChunkResult(session_id, received, total_chunks, banner=banner)

    async def get_status(self, session: AsyncSession, session_id: str) -> SessionStatus:
        upload = await self._get_session(session, session_id)
        if upload is None or upload.expires_at <= utcnow():
            raise NotFoundError("Upload session not found")

        return SessionStatus(
            session_id=session_id,
            total_chunks=upload.total_chunks,
            received_indices=self._received_indices(session_id, upload.total_chunks),
            expires_at=upload.expires_at,
        )

    async def cancel(self, session: AsyncSession, session_id: str) -> None:
        """Discard a session and its buffered chunks"""
        result = await session.execute(
            delete(UploadSession).where(UploadSession.session_id == session_id)
        )
        await session.commit()
        if result.rowcount == 0:
            raise NotFoundError("Upload session not found")

        self._remove_chunks(session_id)
        logger.info(f"🛑 Cancelled upload session {session_id}")

    async def purge_expired(self, session: AsyncSession) -> int:
        """Drop sessions past their expiry along with their chunk directories"""
        now = utcnow()
        result = await session.execute(
            select(UploadSession.session_id).where(UploadSession.expires_at <= now)
        )
        expired = list(result.scalars().all())
        if not expired:
            return 0

        await session.execute(
            delete(UploadSession).where(UploadSession.session_id.in_(expired))
        )
        await session.commit()

        for session_id in expired:
            self._remove_chunks(session_id)
        logger.info(f"🧹 Purged {len(expired)} expired upload session(s)")
        return len(expired)

    # ------------------------------------------------------------------
    # Session bookkeeping
    # ------------------------------------------------------------------

    def _validate(self, request: ChunkUploadRequest) -> None:
        if not request.session_id or request.chunk_index is None or not request.chunk_data:
            raise InvalidInputError("Missing required chunk parameters")
        if not SESSION_ID_PATTERN.match(request.session_id):
            raise InvalidInputError("Invalid session id")
        if request.chunk_index < 0:
            raise InvalidInputError("chunkIndex must be >= 0")
        if request.total_chunks is not None and request.total_chunks <= 0:
            raise InvalidInputError("totalChunks must be > 0")

    async def _get_session(self, session: AsyncSession, session_id: str) -> Optional[UploadSession]:
        result = await session.execute(
            select(UploadSession).where(UploadSession.session_id == session_id)
        )
        return result.scalar_one_or_none()

    async def _open_session(self, session: AsyncSession, request: ChunkUploadRequest) -> UploadSession:
        if request.total_chunks is None:
            raise InvalidInputError("totalChunks is required for a new upload session")
        if request.chunk_index >= request.total_chunks:
            raise InvalidInputError(
                f"chunkIndex {request.chunk_index} out of range for {request.total_chunks} chunks"
            )
        filename = request.filename or DEFAULT_FILENAME
        image_storage.validate_filename(filename)

        upload = UploadSession(
            session_id=request.session_id,
            total_chunks=request.total_chunks,
            filename=filename,
            title=request.title or "",
            subtitle=request.subtitle or "",
            expires_at=utcnow() + self.ttl,
        )
        session.add(upload)
        try:
            await session.commit()
        except IntegrityError:
            # Another request opened the same session first
            await session.rollback()
            existing = await self._get_session(session, request.session_id)
            if existing is None:
                raise
            self._check_against_session(existing, request)
            return existing

        logger.info(
            f"🆕 Created upload session {upload.session_id} "
            f"({upload.total_chunks} chunks, {upload.filename})"
        )
        return upload

    def _check_against_session(self, upload: UploadSession, request: ChunkUploadRequest) -> None:
        if request.total_chunks is not None and request.total_chunks != upload.total_chunks:
            raise UploadSessionConflictError(
                "totalChunks does not match the upload session",
                detail=f"session has {upload.total_chunks}, request sent {request.total_chunks}"
            )
        if request.chunk_index >= upload.total_chunks:
            raise InvalidInputError(
                f"chunkIndex {request.chunk_index} out of range for {upload.total_chunks} chunks"
            )

    # ------------------------------------------------------------------
    # Chunk files
    # ------------------------------------------------------------------

    def _session_dir(self, session_id: str) -> Path:
        return self.chunk_dir / session_id

    def _write_chunk(self, session_id: str, chunk_index: int, chunk_data: str) -> None:
        session_dir = self._session_dir(session_id)
        session_dir.mkdir(parents=True, exist_ok=True)

        target = session_dir / f"chunk_{chunk_index}"
        tmp = session_dir / f".chunk_{chunk_index}.{uuid4().hex}.tmp"
        tmp.write_text(chunk_data, encoding="utf-8")
        os.replace(tmp, target)

    def _received_indices(self, session_id: str, total_chunks: int) -> list[int]:
        session_dir = self._session_dir(session_id)
        if not session_dir.is_dir():
            return []

        indices = []
        for entry in session_dir.iterdir():
            match = CHUNK_FILE_PATTERN.match(entry.name)
            if match and int(match.group(1)) < total_chunks:
                indices.append(int(match.group(1)))
        return sorted(indices)

    def _read_payload(self, session_id: str, total_chunks: int) -> str:
        session_dir = self._session_dir(session_id)
        return "".join(
            (session_dir / f"chunk_{index}").read_text(encoding="utf-8")
            for index in range(total_chunks)
        )

    def _remove_chunks(self, session_id: str) -> None:
        shutil.rmtree(self._session_dir(session_id), ignore_errors=True)

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    async def _assemble(self, session: AsyncSession, upload: UploadSession) -> Optional[Banner]:
        """
        Join, decode and persist a complete session.

        Deleting the session row is the claim: only the request whose delete
        hits the row assembles, so a session produces at most one banner.
        Returns None when another request won the claim. The session is gone
        afterwards whether persistence succeeds or not.
        """
        session_id = upload.session_id
        total_chunks = upload.total_chunks
        filename, title, subtitle = upload.filename, upload.title, upload.subtitle

        claim = await session.execute(
            delete(UploadSession).where(UploadSession.session_id == session_id)
        )
        await session.commit()
        if claim.rowcount == 0:
            logger.info(f"📦 Session {session_id} was claimed by a concurrent chunk")
            return None

        logger.info(f"🧩 All chunks received for {session_id}, assembling...")
        try:
            payload = self._read_payload(session_id, total_chunks)
            image_bytes = base64.b64decode(payload, validate=True)
            logger.info(f"🧩 Decoded {len(payload)} base64 chars into {len(image_bytes)} bytes")

            banner = await BannerService.create_banner(
                session,
                image_bytes=image_bytes,
                original_filename=filename,
                title=title,
                subtitle=subtitle,
            )
        except Exception as e:
            logger.error(f"❌ Failed to assemble upload session {session_id}: {e}")
            raise UploadAssemblyError("Failed to process assembled chunks", detail=str(e)) from e
        finally:
            self._remove_chunks(session_id)

        logger.info(f"✅ Banner {banner.id} created from chunked upload {session_id}")
        return banner


# Singleton instance
chunked_uploads = ChunkedUploadService(settings.CHUNK_DIR, settings.UPLOAD_SESSION_TTL_SECONDS)
