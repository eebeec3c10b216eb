from __future__ import annotations

import pytest

from gamechanger.entities import DailyGoals, DailyProgress, Message, User, UserInfo, WeeklyGoal, Workout
from gamechanger.errors import RemoteStoreError
from gamechanger.remote import DataApiClient
from gamechanger.repositories import (
    DAILY_PROGRESS,
    GYM_ATTENDANCE,
    MESSAGES,
    USERS,
    WORKOUTS,
    FallbackRepository,
    KeyValueRepo,
    RemoteRepository,
)


@pytest.mark.asyncio
async def test_defaults_when_nothing_stored(local) -> None:
    assert await local.get_daily_goals() == DailyGoals(water=2.0, calories=2000)
    assert await local.get_daily_progress("2026-10-19") == DailyProgress(date="2026-10-19")
    assert await local.get_workouts() == []
    assert await local.get_user_info() == UserInfo()
    assert await local.get_weekly_goal() is None
    assert await local.get_messages("a", "b") == []


@pytest.mark.asyncio
async def test_update_progress_merges_fields(local) -> None:
    await local.update_daily_progress("2026-10-19", {"water": 1.5})
    p = await local.update_daily_progress("2026-10-19", {"calories": 900})
    assert p == DailyProgress(date="2026-10-19", water=1.5, calories=900)
    assert await local.get_daily_progress("2026-10-19") == p
    # other days untouched
    assert await local.get_daily_progress("2026-10-18") == DailyProgress(date="2026-10-18")


@pytest.mark.asyncio
async def test_legacy_day_keys_are_read_as_iso(local) -> None:
    await local.set_value(
        DAILY_PROGRESS,
        {
            "Sun Oct 18 2026": {"water": 2, "calories": 1800},
            "2026-10-17": {"water": 1},
            "garbage": {"water": 3},
        },
    )
    all_progress = await local.get_all_daily_progress()
    assert set(all_progress) == {"2026-10-18", "2026-10-17"}
    assert all_progress["2026-10-18"].calories == 1800

    history = await local.get_progress_history("2026-10-17", "2026-10-18")
    assert [p.date for p in history] == ["2026-10-17", "2026-10-18"]

    # next write stores the normalized key
    await local.update_daily_progress("2026-10-18", {"water": 2.5})
    raw = await local.get_value(DAILY_PROGRESS)
    assert "Sun Oct 18 2026" not in raw
    assert raw["2026-10-18"] == {"water": 2.5, "calories": 1800}


@pytest.mark.asyncio
async def test_workouts_save_and_delete(local) -> None:
    await local.save_workouts([Workout(id="1", name="Push"), Workout(id="2", name="Pull")])
    await local.save_workout(Workout(id="2", name="Pull heavy"))
    await local.save_workout(Workout(id="3", name="Legs"))
    await local.delete_workout("1")
    assert [(w.id, w.name) for w in await local.get_workouts()] == [("2", "Pull heavy"), ("3", "Legs")]


@pytest.mark.asyncio
async def test_messages_between_two_users(local) -> None:
    await local.send_message(Message(id="1", sender_id="a", receiver_id="b", timestamp="2026-10-19T10:00:00Z", text="hi"))
    await local.send_message(Message(id="2", sender_id="c", receiver_id="a", timestamp="2026-10-19T09:00:00Z", text="x"))
    await local.send_message(Message(id="3", sender_id="b", receiver_id="a", timestamp="2026-10-19T08:00:00Z", text="yo"))
    assert [m.id for m in await local.get_messages("a", "b")] == ["3", "1"]


@pytest.mark.asyncio
async def test_gym_attendance_is_sparse(local) -> None:
    await local.mark_gym_attendance("2026-10-19", True)
    await local.mark_gym_attendance("2026-10-20", True)
    await local.mark_gym_attendance("2026-10-20", False)
    await local.mark_gym_attendance("2026-09-01", True)

    assert await local.get_value(GYM_ATTENDANCE) == {"2026-10-19": True, "2026-09-01": True}
    assert await local.get_gym_attendance("2026-10-19", "2026-10-25") == {"2026-10-19": True}


@pytest.mark.asyncio
async def test_weekly_goal_overwritten(local) -> None:
    await local.save_weekly_goal(WeeklyGoal(goal=3, week_start="2026-10-12"))
    await local.save_weekly_goal(WeeklyGoal(goal=4, week_start="2026-10-19"))
    assert await local.get_weekly_goal() == WeeklyGoal(goal=4, week_start="2026-10-19")


@pytest.mark.asyncio
async def test_users(local) -> None:
    u = User(id="u1", email="a@b.c", password_hash="h", first_name="A", last_name="B")
    await local.add_user(u)
    assert await local.get_user_by_email("a@b.c") == u
    assert await local.get_user_by_email("x@b.c") is None

    u.password_hash = "h2"
    await local.update_user(u)
    assert (await local.get_user_by_email("a@b.c")).password_hash == "h2"


@pytest.mark.asyncio
async def test_user_id_is_stable(local) -> None:
    uid = await local.get_or_create_user_id()
    assert uid.startswith("user_")
    assert await local.get_or_create_user_id() == uid


@pytest.mark.asyncio
async def test_corrupt_value_reads_as_default(local) -> None:
    async with local.sessions() as db:
        await KeyValueRepo(db).set_item("daily_goals", "{not json")
        await db.commit()
    assert await local.get_daily_goals() == DailyGoals()


@pytest.mark.asyncio
async def test_fallback_uses_local_when_remote_not_configured(cfg, local) -> None:
    repo = FallbackRepository(RemoteRepository(DataApiClient(cfg, user_id=local.get_or_create_user_id)), local)

    await repo.save_daily_goals(DailyGoals(water=3, calories=2500))
    await repo.update_daily_progress("2026-10-19", {"water": 1})

    assert await local.get_daily_goals() == DailyGoals(water=3, calories=2500)
    assert (await repo.get_daily_progress("2026-10-19")).water == 1


@pytest.mark.asyncio
async def test_fallback_does_not_hide_local_errors(local) -> None:
    class Primary:
        async def get_workouts(self):
            raise RemoteStoreError("down")

    class Fallback:
        async def get_workouts(self):
            raise RuntimeError("disk full")

    repo = FallbackRepository(Primary(), Fallback())  # type: ignore[arg-type]
    with pytest.raises(RuntimeError):
        await repo.get_workouts()


@pytest.mark.asyncio
async def test_fallback_only_catches_remote_errors(local) -> None:
    class Primary:
        async def get_workouts(self):
            raise KeyError("bug")

    repo = FallbackRepository(Primary(), local)  # type: ignore[arg-type]
    with pytest.raises(KeyError):
        await repo.get_workouts()


@pytest.mark.asyncio
async def test_malformed_local_records_are_skipped(local) -> None:
    await local.set_value(
        DAILY_PROGRESS,
        {"2026-10-18": {"water": "n/a", "calories": 1800}, "2026-10-17": {"water": 2}},
    )
    await local.set_value(WORKOUTS, [{"id": "1", "name": ""}, {"id": "2", "name": "Legs"}])
    await local.set_value(
        MESSAGES,
        [{"id": "1", "receiverId": "b"}, {"id": "2", "senderId": "a", "receiverId": "b", "timestamp": "t"}],
    )
    await local.set_value(USERS, [{"email": "no-id@b.c"}])

    assert list(await local.get_all_daily_progress()) == ["2026-10-17"]
    assert [w.id for w in await local.get_workouts()] == ["2"]
    assert [m.id for m in await local.get_messages("a", "b")] == ["2"]
    assert await local.get_user_by_email("no-id@b.c") is None


@pytest.mark.asyncio
async def test_malformed_single_records_read_as_default(local) -> None:
    await local.set_value("daily_goals", {"water": "lots"})
    await local.set_value("user_info", {"program": "bulk"})
    await local.set_value("weekly_goals", {"goal": -2, "weekStart": "2026-10-19"})

    assert await local.get_daily_goals() == DailyGoals()
    assert await local.get_user_info() == UserInfo()
    assert await local.get_weekly_goal() is None


@pytest.mark.asyncio
async def test_save_workout_keeps_order(local) -> None:
    await local.save_workouts([Workout(id="1", name="Push"), Workout(id="2", name="Pull")])
    await local.save_workout(Workout(id="1", name="Push heavy"))
    assert [w.name for w in await local.get_workouts()] == ["Push heavy", "Pull"]
