"""
Chunked upload reassembly: ordering, replays, session validation and cleanup
"""
import asyncio
import base64
import itertools
from datetime import timedelta

import pytest
from sqlalchemy import func, select, update

from conftest import TEST_ROOT
from beyou.core import async_session_maker
from beyou.core.exceptions import (
    InvalidInputError,
    NotFoundError,
    UploadAssemblyError,
    UploadSessionConflictError,
)
from beyou.models import Banner, UploadSession, utcnow
from beyou.schemas import ChunkUploadRequest
from beyou.services import chunked_uploads, image_storage

IMAGE = bytes(range(30))


def split_payload(content: bytes, parts: int) -> list[str]:
    encoded = base64.b64encode(content).decode()
    size = -(-len(encoded) // parts)
    return [encoded[i * size:(i + 1) * size] for i in range(parts)]


async def send(session_id, chunk_index, chunk_data, total_chunks=None, **metadata):
    """One chunk per session, the way each HTTP request gets its own"""
    request = ChunkUploadRequest(
        session_id=session_id,
        chunk_index=chunk_index,
        chunk_data=chunk_data,
        total_chunks=total_chunks,
        **metadata,
    )
    async with async_session_maker() as session:
        return await chunked_uploads.receive_chunk(session, request)


async def count(model) -> int:
    async with async_session_maker() as session:
        return await session.scalar(select(func.count()).select_from(model))


def chunk_dir(session_id: str):
    return TEST_ROOT / "chunks" / session_id


async def test_out_of_order_chunks_assemble_into_original_bytes():
    chunks = split_payload(IMAGE, 3)

    first = await send("abc", 2, chunks[2], 3, filename="hero.png")
    assert not first.complete
    assert (first.received_chunks, first.total_chunks) == (1, 3)

    second = await send("abc", 0, chunks[0], 3)
    assert not second.complete
    assert second.received_chunks == 2

    final = await send("abc", 1, chunks[1], 3)
    assert final.complete
    assert final.banner.image_path.startswith("/uploads/banners/")
    assert final.banner.image_path.endswith(".png")
    assert image_storage.read(final.banner.image_path) == IMAGE

    assert await count(UploadSession) == 0
    assert not chunk_dir("abc").exists()


@pytest.mark.parametrize("order", list(itertools.permutations(range(4))))
async def test_any_arrival_order_yields_same_file(order):
    chunks = split_payload(IMAGE, 4)

    results = [await send("perm", index, chunks[index], 4) for index in order]

    assert [r.complete for r in results] == [False, False, False, True]
    assert image_storage.read(results[-1].banner.image_path) == IMAGE
    assert await count(Banner) == 1


async def test_simultaneous_final_chunks_create_one_banner_without_errors():
    chunks = split_payload(IMAGE, 3)
    await send("race", 0, chunks[0], 3)

    results = await asyncio.gather(
        send("race", 1, chunks[1], 3),
        send("race", 2, chunks[2], 3),
    )

    completed = [r for r in results if r.complete]
    assert len(completed) == 1
    assert image_storage.read(completed[0].banner.image_path) == IMAGE
    assert all(r.total_chunks == 3 for r in results)
    assert await count(Banner) == 1
    assert await count(UploadSession) == 0


async def test_chunk_for_a_claimed_session_is_acknowledged(monkeypatch):
    chunks = split_payload(IMAGE, 2)
    await send("claimed", 0, chunks[0], 2)
    await send("claimed", 1, chunks[1], 2)

    # A straggler that read the session row just before it was claimed
    stale = UploadSession(session_id="claimed", total_chunks=2, filename="upload.jpg", title="", subtitle="")

    async def stale_lookup(session, session_id):
        return stale

    monkeypatch.setattr(chunked_uploads, "_get_session", stale_lookup)
    result = await send("claimed", 1, chunks[1])

    assert not result.complete
    assert (result.received_chunks, result.total_chunks) == (2, 2)
    assert await count(Banner) == 1
    assert not chunk_dir("claimed").exists()


async def test_replayed_chunk_does_not_advance_progress():
    chunks = split_payload(IMAGE, 3)

    await send("replay", 0, chunks[0], 3)
    again = await send("replay", 0, chunks[0], 3)

    assert again.received_chunks == 1
    assert not again.complete


async def test_last_write_wins_for_an_index():
    chunks = split_payload(IMAGE, 2)
    other = split_payload(b"\xff" * 30, 2)

    await send("lww", 0, other[0], 2)
    await send("lww", 0, chunks[0], 2)
    result = await send("lww", 1, chunks[1], 2)

    assert image_storage.read(result.banner.image_path) == IMAGE


@pytest.mark.parametrize("fields", [
    {"session_id": None, "chunk_index": 0, "chunk_data": "QQ==", "total_chunks": 1},
    {"session_id": "s1", "chunk_index": None, "chunk_data": "QQ==", "total_chunks": 1},
    {"session_id": "s1", "chunk_index": 0, "chunk_data": "", "total_chunks": 1},
    {"session_id": "s1", "chunk_index": -1, "chunk_data": "QQ==", "total_chunks": 1},
    {"session_id": "../escape", "chunk_index": 0, "chunk_data": "QQ==", "total_chunks": 1},
    {"session_id": "s1", "chunk_index": 0, "chunk_data": "QQ==", "total_chunks": 0},
])
async def test_rejected_requests_touch_nothing(fields):
    with pytest.raises(InvalidInputError):
        await send(**fields)

    assert await count(UploadSession) == 0
    assert list((TEST_ROOT / "chunks").glob("*")) == []


async def test_first_chunk_must_declare_total():
    with pytest.raises(InvalidInputError):
        await send("nototal", 0, "QQ==")
    assert await count(UploadSession) == 0


async def test_index_beyond_total_is_rejected():
    with pytest.raises(InvalidInputError):
        await send("range", 3, "QQ==", 3)

    await send("range", 0, "QQ==", 3)
    with pytest.raises(InvalidInputError):
        await send("range", 5, "QQ==")


async def test_total_chunks_mismatch_is_a_conflict():
    await send("mismatch", 0, "QQ==", 3)

    with pytest.raises(UploadSessionConflictError):
        await send("mismatch", 1, "QQ==", 4)

    # Later chunks may omit totalChunks
    progress = await send("mismatch", 1, "QQ==")
    assert progress.received_chunks == 2


async def test_unsupported_filename_rejected_on_first_chunk():
    with pytest.raises(InvalidInputError):
        await send("exe", 0, "QQ==", 2, filename="virus.exe")
    assert await count(UploadSession) == 0


async def test_metadata_is_kept_from_the_first_chunk_only():
    chunks = split_payload(IMAGE, 2)

    await send("meta", 1, chunks[1], 2, title="Summer", subtitle="Up to 50% off")
    result = await send("meta", 0, chunks[0], 2, title="Ignored", subtitle="Ignored")

    assert result.banner.title == "Summer"
    assert result.banner.subtitle == "Up to 50% off"


async def test_undecodable_payload_fails_and_discards_session():
    await send("broken", 0, "not*base64", 2)

    with pytest.raises(UploadAssemblyError):
        await send("broken", 1, "!!!!", 2)

    assert await count(UploadSession) == 0
    assert await count(Banner) == 0
    assert not chunk_dir("broken").exists()


async def test_session_id_is_reusable_after_completion():
    chunks = split_payload(IMAGE, 2)
    await send("again", 0, chunks[0], 2)
    await send("again", 1, chunks[1], 2)

    other = b"second upload"
    reused = split_payload(other, 1)
    result = await send("again", 0, reused[0], 1)

    assert result.complete
    assert image_storage.read(result.banner.image_path) == other
    assert await count(Banner) == 2


async def test_expired_sessions_are_purged_before_the_next_chunk():
    await send("stale", 0, "QQ==", 2)
    async with async_session_maker() as session:
        await session.execute(
            update(UploadSession)
            .where(UploadSession.session_id == "stale")
            .values(expires_at=utcnow() - timedelta(seconds=1))
        )
        await session.commit()

    # The old session is gone, so this chunk has to open a new one
    with pytest.raises(InvalidInputError):
        await send("stale", 1, "QQ==")

    assert await count(UploadSession) == 0
    assert not chunk_dir("stale").exists()


async def test_purge_leaves_live_sessions_alone():
    await send("live", 0, "QQ==", 2)

    async with async_session_maker() as session:
        purged = await chunked_uploads.purge_expired(session)

    assert purged == 0
    assert (chunk_dir("live") / "chunk_0").is_file()


async def test_status_reports_received_indices():
    await send("status", 3, "QQ==", 5)
    await send("status", 1, "QQ==", 5)

    async with async_session_maker() as session:
        status = await chunked_uploads.get_status(session, "status")

    assert status.total_chunks == 5
    assert status.received_indices == [1, 3]
    assert status.expires_at > utcnow()


async def test_cancel_discards_session_and_chunks():
    await send("cancel", 0, "QQ==", 2)

    async with async_session_maker() as session:
        await chunked_uploads.cancel(session, "cancel")
        with pytest.raises(NotFoundError):
            await chunked_uploads.get_status(session, "cancel")
        with pytest.raises(NotFoundError):
            await chunked_uploads.cancel(session, "cancel")

    assert not chunk_dir("cancel").exists()
