"""
tests/conftest.py

Общие фикстуры: хранилище файлов в памяти, временная база SQLite и фабрика
временных файлов заданного размера.
"""
from pathlib import Path

import pytest
import pytest_asyncio

from db import build_engine, build_session_pool, init_db
from services.assets import AssetManager
from services.ingestion import IngestionGate
from tests.helpers import FakeBlobStore


@pytest.fixture
def blob_store() -> FakeBlobStore:
    return FakeBlobStore()


@pytest.fixture
def gate(blob_store) -> IngestionGate:
    return IngestionGate(blob_store)


@pytest.fixture
def assets(blob_store, gate) -> AssetManager:
    return AssetManager(blob_store, gate)


@pytest.fixture
def make_file(tmp_path):
    """Создает временный файл нужного размера"""
    counter = {"n": 0}

    def _make(size: int, suffix: str = ".jpg") -> Path:
        counter["n"] += 1
        path = tmp_path / "staging" / f"file{counter['n']}{suffix}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"\0" * size)
        return path

    return _make


@pytest_asyncio.fixture
async def session(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'dictionary.db'}")
    await init_db(engine)
    session_pool = build_session_pool(engine)
    async with session_pool() as db_session:
        yield db_session
    await engine.dispose()
