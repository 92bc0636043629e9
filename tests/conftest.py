"""
Test Suite Configuration
"""
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncGenerator, Optional

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from stocksync.config import Settings
from stocksync.config.settings import SyncSettings
from stocksync.database.connection import get_document_store
from stocksync.database.models import Base
from stocksync.database.store import DocumentStore
from stocksync.sync.job import InventorySyncJob

INVENTORY_HEADER = (
    "Item number;Size;Color;Brand;Product name;Category;Cost price;Rec Retail;EAN;Stock;SKU;"
    "Quality;Season;Sold;In Purchase;Leveringsuge;Leverandør;Salgspris;Vejl. udsalgspris;Varestatus;Inaktiv"
)


def inventory_csv(*rows: str) -> bytes:
    return "\n".join([INVENTORY_HEADER, *rows]).encode("utf-8") + b"\n"


class FakeFTPSource:
    """In-memory stand-in for FTPSource"""

    def __init__(self, content: bytes, modified: datetime):
        self.content = content
        self.modified = modified
        self.downloads = 0
        self.error: Optional[Exception] = None

    async def get_modified_time(self, remote_path: str) -> datetime:
        if self.error is not None:
            raise self.error
        return self.modified

    async def download(self, remote_path: str, local_path) -> Path:
        if self.error is not None:
            raise self.error
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        local_path.write_bytes(self.content)
        self.downloads += 1
        return local_path


@pytest.fixture
def test_settings() -> Settings:
    """Create test settings"""
    return Settings(
        app_env="testing",
        debug=True,
    )


@pytest.fixture
async def test_engine():
    """In-memory database shared by every session of a test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def store(session_factory) -> DocumentStore:
    return DocumentStore(session_factory)


@pytest.fixture
def sample_csv() -> bytes:
    """Two products: a shirt in M/L and a single-size scarf, plus a row without SKU"""
    return inventory_csv(
        "100;M;Blue;Acme;Shirt;Shirts;100.00;299.95;5701234567890;3;SKU-1;Cotton;ES 25;2;0;12;Acme;299.95;299.95;Aktiv;",
        "100;L;Blue;Acme;Shirt;Shirts;100.00;299.95;5701234567891;5;SKU-2;Cotton;ES 25;1;0;12;Acme;299.95;299.95;Aktiv;",
        "200;ONE SIZE;Red;Nordic;Scarf;Accessories;50.00;149.95;5701234567892;10;SKU-3;Wool;WI 24;4;6;40;Nordic;149.95;149.95;Aktiv;",
        "300;S;Black;Acme;Ghost;Shirts;10.00;20.00;5701234567893;1;;Cotton;ES 25;0;0;1;Acme;20.00;20.00;Aktiv;",
    )


@pytest.fixture
def sync_settings(tmp_path) -> SyncSettings:
    return SyncSettings(staging_dir=str(tmp_path))


@pytest.fixture
def fake_source(sample_csv) -> FakeFTPSource:
    return FakeFTPSource(sample_csv, datetime(2025, 1, 15, 8, 30, tzinfo=timezone.utc))


@pytest.fixture
def sync_job(store, fake_source, sync_settings) -> InventorySyncJob:
    return InventorySyncJob(store, source=fake_source, sync_settings=sync_settings)


@pytest.fixture
async def client(store, sync_job) -> AsyncGenerator[AsyncClient, None]:
    """API client against the in-memory store; lifespan is not run"""
    from stocksync.serving.api.main import create_app
    from stocksync.serving.api.routes.sync import get_sync_job

    app = create_app()
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_sync_job] = lambda: sync_job

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
        yield http


def product_doc(
    name: str = "Shirt",
    items: Optional[list] = None,
    **fields,
) -> dict:
    """Stored product document for analytics and stock list tests"""
    return {
        "itemNumber": fields.pop("itemNumber", "100"),
        "productName": name,
        "leverandor": fields.pop("leverandor", "Acme"),
        "isActive": fields.pop("isActive", True),
        "items": items or [],
        **fields,
    }


@pytest.fixture
def make_csv():
    return inventory_csv


@pytest.fixture
def make_product():
    return product_doc
