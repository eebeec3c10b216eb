from __future__ import annotations

import datetime as dt
from types import SimpleNamespace

import aiohttp
import pytest

from gamechanger.entities import DailyProgress, User, Workout
from gamechanger.errors import RemoteNotConfigured, RemoteStoreError
from gamechanger.remote import DataApiClient
from gamechanger.repositories import FallbackRepository, RemoteRepository
from gamechanger.service import TrackerService
from gamechanger.streaks import Streaks


TODAY = dt.date(2026, 10, 19)


class FakeResponse:
    def __init__(self, status: int, payload=None, text: str = ""):
        self.status = status
        self._payload = payload
        self._text = text

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def text(self):
        return self._text

    async def json(self, content_type=None):
        return self._payload


class FakeSession:
    """Records every POST and answers from a queue (or a callable)."""

    def __init__(self, responses):
        self.responses = responses
        self.calls: list[SimpleNamespace] = []

    def __call__(self):
        return self

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def post(self, url, *, json, headers, timeout):
        self.calls.append(SimpleNamespace(url=url, body=json, headers=headers, timeout=timeout))
        r = self.responses(url, json) if callable(self.responses) else self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


async def _uid() -> str:
    return "user_1_abc"


@pytest.mark.asyncio
async def test_request_shape(remote_cfg) -> None:
    session = FakeSession([FakeResponse(200, {"document": {"water": 3, "calories": 2500}})])
    client = DataApiClient(remote_cfg, user_id=_uid, session_factory=session)

    doc = await client.find_one("dailyGoals")

    assert doc == {"water": 3, "calories": 2500}
    call = session.calls[0]
    assert call.url == "https://data.example.test/app/x/endpoint/data/v1/action/findOne"
    assert call.headers["api-key"] == "secret-key"
    assert call.headers["Content-Type"] == "application/json"
    assert call.body == {
        "dataSource": "Cluster0",
        "database": "game_changer",
        "collection": "dailyGoals",
        "filter": {"userId": "user_1_abc"},
    }
    assert call.timeout.total == 15


@pytest.mark.asyncio
async def test_unscoped_request_has_no_user_id(remote_cfg) -> None:
    session = FakeSession([FakeResponse(200, {"document": None})])
    client = DataApiClient(remote_cfg, user_id=_uid, session_factory=session)

    assert await client.find_one("users", {"email": "a@b.c"}, scoped=False) is None
    assert session.calls[0].body["filter"] == {"email": "a@b.c"}


@pytest.mark.asyncio
async def test_upsert_body(remote_cfg) -> None:
    session = FakeSession([FakeResponse(200, {"matchedCount": 1})])
    client = DataApiClient(remote_cfg, user_id=_uid, session_factory=session)

    await client.upsert("dailyProgress", {"date": "2026-10-19"}, {"water": 1})

    body = session.calls[0].body
    assert session.calls[0].url.endswith("/action/updateOne")
    assert body["filter"] == {"userId": "user_1_abc", "date": "2026-10-19"}
    assert body["update"] == {"$set": {"water": 1}}
    assert body["upsert"] is True


@pytest.mark.asyncio
async def test_http_error_raises(remote_cfg) -> None:
    session = FakeSession([FakeResponse(401, text="invalid session")])
    client = DataApiClient(remote_cfg, user_id=_uid, session_factory=session)

    with pytest.raises(RemoteStoreError) as e:
        await client.find("workouts")
    assert "401" in str(e.value)
    assert "invalid session" in str(e.value)


@pytest.mark.asyncio
async def test_connection_error_is_wrapped(remote_cfg) -> None:
    session = FakeSession([aiohttp.ClientConnectionError("no route")])
    client = DataApiClient(remote_cfg, user_id=_uid, session_factory=session)

    with pytest.raises(RemoteStoreError):
        await client.find("workouts")


@pytest.mark.asyncio
async def test_not_configured(cfg) -> None:
    session = FakeSession([])
    client = DataApiClient(cfg, user_id=_uid, session_factory=session)

    with pytest.raises(RemoteNotConfigured):
        await client.find("workouts")
    assert session.calls == []


def test_placeholder_key_is_not_configured(remote_cfg) -> None:
    assert remote_cfg.remote_configured
    assert not remote_cfg.model_copy(update={"data_api_key": "YOUR_API_KEY"}).remote_configured


@pytest.mark.asyncio
async def test_remote_progress_update_merges(remote_cfg) -> None:
    def answer(url, body):
        if url.endswith("/findOne"):
            return FakeResponse(200, {"document": {"date": "2026-10-19", "water": 1.5, "calories": 700}})
        return FakeResponse(200, {"matchedCount": 1})

    session = FakeSession(answer)
    repo = RemoteRepository(DataApiClient(remote_cfg, user_id=_uid, session_factory=session))

    p = await repo.update_daily_progress("2026-10-19", {"calories": 900})

    assert p == DailyProgress(date="2026-10-19", water=1.5, calories=900)
    values = session.calls[-1].body["update"]["$set"]
    assert values["water"] == 1.5
    assert values["calories"] == 900
    assert values["userId"] == "user_1_abc"
    assert values["updatedAt"].endswith("Z")


@pytest.mark.asyncio
async def test_remote_goals_default_is_written_back(remote_cfg) -> None:
    session = FakeSession([FakeResponse(200, {"document": None}), FakeResponse(200, {"upsertedId": "x"})])
    repo = RemoteRepository(DataApiClient(remote_cfg, user_id=_uid, session_factory=session))

    goals = await repo.get_daily_goals()

    assert (goals.water, goals.calories) == (2.0, 2000)
    assert session.calls[1].url.endswith("/action/updateOne")


@pytest.mark.asyncio
async def test_remote_save_workouts_replaces_all(remote_cfg) -> None:
    session = FakeSession(lambda url, body: FakeResponse(200, {}))
    repo = RemoteRepository(DataApiClient(remote_cfg, user_id=_uid, session_factory=session))

    await repo.save_workouts([Workout(id="1", name="Push")])

    assert [c.url.rsplit("/", 1)[-1] for c in session.calls] == ["deleteMany", "insertMany"]
    docs = session.calls[1].body["documents"]
    assert docs[0]["id"] == "1"
    assert docs[0]["userId"] == "user_1_abc"


@pytest.mark.asyncio
async def test_remote_users_are_not_scoped(remote_cfg) -> None:
    session = FakeSession(lambda url, body: FakeResponse(200, {}))
    repo = RemoteRepository(DataApiClient(remote_cfg, user_id=_uid, session_factory=session))

    await repo.add_user(User(id="u1", email="a@b.c", password_hash="h", first_name="A", last_name="B"))

    body = session.calls[0].body
    assert body["filter"] == {}
    assert body["document"]["email"] == "a@b.c"


def _bad_dates(url, body):
    if url.endswith("/findOne"):
        return FakeResponse(200, {"document": None})
    if url.endswith("/find"):
        return FakeResponse(200, {"documents": [{"date": "today", "water": 1}]})
    return FakeResponse(200, {})


@pytest.mark.asyncio
async def test_undecodable_document_is_a_remote_error(remote_cfg) -> None:
    repo = RemoteRepository(DataApiClient(remote_cfg, user_id=_uid, session_factory=FakeSession(_bad_dates)))

    with pytest.raises(RemoteStoreError):
        await repo.get_all_daily_progress()
    with pytest.raises(RemoteStoreError):
        await repo.get_gym_attendance("2026-10-01", "2026-10-19")


@pytest.mark.asyncio
async def test_bad_remote_documents_fall_back_to_local(remote_cfg, local) -> None:
    for day in ("2026-10-18", "2026-10-19"):
        await local.update_daily_progress(day, {"water": 2, "calories": 2000})
        await local.mark_gym_attendance(day, True)

    client = DataApiClient(remote_cfg, user_id=_uid, session_factory=FakeSession(_bad_dates))
    tracker = TrackerService(FallbackRepository(RemoteRepository(client), local), remote_cfg, clock=lambda: TODAY)

    assert set(await tracker.get_all_daily_progress()) == {"2026-10-18", "2026-10-19"}
    assert await tracker.calculate_streaks() == Streaks(gym=2, eating=2, drinking=2)


@pytest.mark.asyncio
async def test_latest_weekly_goal_uses_find_with_limit(remote_cfg) -> None:
    session = FakeSession([FakeResponse(200, {"documents": [{"goal": 4, "weekStart": "2026-10-19"}]})])
    repo = RemoteRepository(DataApiClient(remote_cfg, user_id=_uid, session_factory=session))

    goal = await repo.get_weekly_goal()

    assert (goal.goal, goal.week_start) == (4, "2026-10-19")
    call = session.calls[0]
    assert call.url.endswith("/action/find")
    assert call.body["sort"] == {"weekStart": -1}
    assert call.body["limit"] == 1
