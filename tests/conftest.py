from __future__ import annotations

import datetime as dt

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from gamechanger.config import Settings
from gamechanger.db import make_sessionmaker
from gamechanger.init_db import init_db
from gamechanger.repositories import LocalRepository


# a Monday
TODAY = dt.date(2026, 10, 19)


@pytest.fixture
def cfg(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATA_API_URL=None,
        DATA_API_KEY=None,
        DB_PATH=str(tmp_path / "gamechanger.sqlite3"),
        DATABASE_URL=None,
        LOG_FILE=str(tmp_path / "gamechanger.log"),
    )


@pytest.fixture
def remote_cfg(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        DATA_API_URL="https://data.example.test/app/x/endpoint/data/v1",
        DATA_API_KEY="secret-key",
        DB_PATH=str(tmp_path / "gamechanger.sqlite3"),
        DATABASE_URL=None,
        LOG_FILE=str(tmp_path / "gamechanger.log"),
    )


@pytest_asyncio.fixture
async def local():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(engine)
    yield LocalRepository(make_sessionmaker(engine))
    await engine.dispose()
