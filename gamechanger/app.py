from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncEngine

from gamechanger.auth import AuthService
from gamechanger.config import Settings
from gamechanger.db import make_engine, make_sessionmaker
from gamechanger.init_db import init_db
from gamechanger.log import setup_logger
from gamechanger.remote import DataApiClient
from gamechanger.repositories import FallbackRepository, LocalRepository, RemoteRepository, Repository
from gamechanger.service import TrackerService


logger = logging.getLogger(__name__)


@dataclass
class App:
    settings: Settings
    engine: AsyncEngine
    local: LocalRepository
    repository: Repository
    tracker: TrackerService
    auth: AuthService

    async def close(self) -> None:
        await self.engine.dispose()


def select_repository(cfg: Settings, local: LocalRepository) -> Repository:
    """Chosen once at startup: local only, or remote with local fallback."""
    if not cfg.remote_configured:
        logger.info("Data API not configured, using local store only")
        return local
    client = DataApiClient(cfg, user_id=local.get_or_create_user_id)
    return FallbackRepository(RemoteRepository(client), local)


async def build_app(
    cfg: Settings | None = None,
    *,
    clock: Callable[[], dt.date] = dt.date.today,
    configure_logging: bool = True,
) -> App:
    cfg = cfg or Settings()
    if configure_logging:
        setup_logger(cfg)

    engine = make_engine(cfg)
    await init_db(engine)
    local = LocalRepository(make_sessionmaker(engine))
    repository = select_repository(cfg, local)
    return App(
        settings=cfg,
        engine=engine,
        local=local,
        repository=repository,
        tracker=TrackerService(repository, cfg, clock=clock),
        auth=AuthService(repository, local, cfg),
    )
