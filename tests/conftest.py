"""
Shared fixtures: throwaway SQLite database and upload directories per test run
"""
import os
import shutil
import tempfile
from decimal import Decimal
from pathlib import Path

# Settings are read at import time, so point them at scratch space first
TEST_ROOT = Path(tempfile.mkdtemp(prefix="beyou-tests-"))
ADMIN_TOKEN = "test-admin-token"

os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_ROOT / 'beyou.db'}"
os.environ["UPLOAD_DIR"] = str(TEST_ROOT / "uploads")
os.environ["CHUNK_DIR"] = str(TEST_ROOT / "chunks")
os.environ["ADMIN_TOKEN"] = ADMIN_TOKEN
os.environ["LOG_LEVEL"] = "WARNING"

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from beyou.core import Base, async_session_maker, engine
from beyou.core.revalidation import page_revalidator
from beyou.main import app
from beyou.models import Product, Sale
from beyou.services import image_storage

ADMIN_HEADERS = {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture(autouse=True)
async def database():
    """Fresh schema, empty upload tree and no stale pages for every test"""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    shutil.rmtree(TEST_ROOT / "uploads", ignore_errors=True)
    shutil.rmtree(TEST_ROOT / "chunks", ignore_errors=True)
    image_storage.ensure_directories()
    page_revalidator.clear()

    yield

    await engine.dispose()


@pytest.fixture
async def db():
    async with async_session_maker() as session:
        yield session


@pytest.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def make_product():
    """Products are committed through their own session and returned detached,
    so a rollback in the session under test can't expire them"""
    async def _make(stock: int = 5, price: str = "10.00", name: str = "Rose Serum", category: str = "skincare"):
        async with async_session_maker() as session:
            product = Product(name=name, category=category, price=Decimal(price), stock_quantity=stock, images=[])
            session.add(product)
            await session.commit()
        return product
    return _make


async def stock_of(product_id: str) -> int:
    """Read stock through a separate session (no identity-map caching)"""
    async with async_session_maker() as session:
        return await session.scalar(
            select(Product.stock_quantity).where(Product.id == product_id)
        )


async def sale_count(product_id: str) -> int:
    async with async_session_maker() as session:
        return await session.scalar(
            select(func.count()).select_from(Sale).where(Sale.product_id == product_id)
        )
