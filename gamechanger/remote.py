from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable

import aiohttp

from gamechanger.config import Settings
from gamechanger.errors import RemoteNotConfigured, RemoteStoreError


logger = logging.getLogger(__name__)

ACTIONS = ("find", "findOne", "insertOne", "insertMany", "updateOne", "deleteOne", "deleteMany")


class DataApiClient:
    """
    Thin client for a document-store Data API:
    POST {api_url}/action/{action} with {dataSource, database, collection, filter, ...}.

    Every filter is scoped by the device `userId` unless `scoped=False`.
    """

    def __init__(
        self,
        cfg: Settings,
        user_id: Callable[[], Awaitable[str]],
        session_factory: Callable[..., aiohttp.ClientSession] = aiohttp.ClientSession,
    ):
        self.cfg = cfg
        self._user_id = user_id
        self._session_factory = session_factory

    async def user_id(self) -> str:
        return await self._user_id()

    async def request(
        self,
        action: str,
        collection: str,
        filter: dict[str, Any] | None = None,
        *,
        scoped: bool = True,
        **extra: Any,
    ) -> dict[str, Any]:
        if not self.cfg.remote_configured:
            raise RemoteNotConfigured("Data API is not configured")
        if action not in ACTIONS:
            raise ValueError(f"unknown Data API action: {action}")

        flt = dict(filter or {})
        if scoped:
            flt = {"userId": await self.user_id(), **flt}

        body: dict[str, Any] = {
            "dataSource": self.cfg.data_api_data_source,
            "database": self.cfg.data_api_database,
            "collection": collection,
            "filter": flt,
            **extra,
        }
        url = f"{(self.cfg.data_api_url or '').rstrip('/')}/action/{action}"
        headers = {"Content-Type": "application/json", "api-key": self.cfg.data_api_key or ""}

        try:
            async with self._session_factory() as session:
                async with session.post(
                    url,
                    json=body,
                    headers=headers,
                    timeout=aiohttp.ClientTimeout(total=self.cfg.data_api_timeout_s),
                ) as resp:
                    if resp.status < 200 or resp.status >= 300:
                        text = await resp.text()
                        raise RemoteStoreError(f"Data API error: {resp.status} - {text[:500]}")
                    data = await resp.json(content_type=None)
        except RemoteStoreError:
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.warning("Data API %s %s failed: %s", action, collection, e)
            raise RemoteStoreError(f"Data API request failed: {type(e).__name__}: {e}") from e

        if not isinstance(data, dict):
            raise RemoteStoreError(f"Data API returned {type(data).__name__}, expected object")
        return data

    async def find(self, collection: str, filter: dict[str, Any] | None = None, **extra: Any) -> list[dict[str, Any]]:
        res = await self.request("find", collection, filter, **extra)
        return list(res.get("documents") or [])

    async def find_one(self, collection: str, filter: dict[str, Any] | None = None, **extra: Any) -> dict[str, Any] | None:
        res = await self.request("findOne", collection, filter, **extra)
        doc = res.get("document")
        return doc if isinstance(doc, dict) else None

    async def upsert(self, collection: str, filter: dict[str, Any] | None, values: dict[str, Any], **extra: Any) -> None:
        await self.request("updateOne", collection, filter, update={"$set": values}, upsert=True, **extra)
