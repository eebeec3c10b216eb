from __future__ import annotations

import os
from pathlib import Path

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from gamechanger.config import Settings


def _ensure_db_dir(db_path: str) -> None:
    p = Path(db_path)
    if p.parent and str(p.parent) not in ("", "."):
        os.makedirs(p.parent, exist_ok=True)


def make_engine(cfg: Settings) -> AsyncEngine:
    if cfg.database_url:
        return create_async_engine(cfg.database_url, future=True, echo=False)

    _ensure_db_dir(cfg.db_path)
    return create_async_engine(f"sqlite+aiosqlite:///{cfg.db_path}", future=True, echo=False)


def make_sessionmaker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, expire_on_commit=False)
