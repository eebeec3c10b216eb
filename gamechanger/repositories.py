from __future__ import annotations

import abc
import contextlib
import logging
from typing import Any, Callable, Iterator, Mapping, TypeVar

from sqlalchemy import Select, delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gamechanger.dates import normalize_date_key
from gamechanger.entities import (
    DailyGoals,
    DailyProgress,
    Message,
    User,
    UserInfo,
    WeeklyGoal,
    Workout,
    make_user_id,
)
from gamechanger.errors import RemoteStoreError, ValidationError
from gamechanger.jsonutil import dumps, loads, utcnow_iso
from gamechanger.models import KeyValue
from gamechanger.remote import DataApiClient
from gamechanger.workouts import upsert_workout


logger = logging.getLogger(__name__)

T = TypeVar("T")

# entity constructors raise ValidationError (a ValueError); wire dicts may lack keys
_DECODE_ERRORS = (ValueError, KeyError, TypeError)


# Local storage keys
DAILY_GOALS = "daily_goals"
WORKOUTS = "workouts"
USER_INFO = "user_info"
DAILY_PROGRESS = "daily_progress"
MESSAGES = "messages"
WEEKLY_GOALS = "weekly_goals"
GYM_ATTENDANCE = "gym_attendance"
CURRENT_USER = "current_user"
USERS = "users"
LAST_EMAIL = "last_email"
USER_ID = "user_id"


class KeyValueRepo:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_item(self, key: str) -> str | None:
        q: Select[tuple[KeyValue]] = select(KeyValue).where(KeyValue.key == key)
        res = await self.db.execute(q)
        row = res.scalar_one_or_none()
        return row.value_json if row else None

    async def set_item(self, key: str, value: str) -> None:
        q: Select[tuple[KeyValue]] = select(KeyValue).where(KeyValue.key == key)
        res = await self.db.execute(q)
        row = res.scalar_one_or_none()
        if row:
            row.value_json = value
            return
        self.db.add(KeyValue(key=key, value_json=value))
        await self.db.flush()

    async def remove_item(self, key: str) -> None:
        await self.db.execute(delete(KeyValue).where(KeyValue.key == key))

    async def get_json(self, key: str) -> Any:
        return loads(await self.get_item(key))

    async def set_json(self, key: str, obj: Any) -> None:
        await self.set_item(key, dumps(obj))


class Repository(abc.ABC):
    """Every entity's get/save operations. Gets return defaults when nothing is stored."""

    @abc.abstractmethod
    async def get_daily_goals(self) -> DailyGoals: ...

    @abc.abstractmethod
    async def save_daily_goals(self, goals: DailyGoals) -> None: ...

    @abc.abstractmethod
    async def get_daily_progress(self, date: str) -> DailyProgress: ...

    @abc.abstractmethod
    async def update_daily_progress(self, date: str, patch: Mapping[str, Any]) -> DailyProgress: ...

    @abc.abstractmethod
    async def get_all_daily_progress(self) -> dict[str, DailyProgress]: ...

    @abc.abstractmethod
    async def get_progress_history(self, start: str, end: str) -> list[DailyProgress]: ...

    @abc.abstractmethod
    async def get_workouts(self) -> list[Workout]: ...

    @abc.abstractmethod
    async def save_workouts(self, workouts: list[Workout]) -> None: ...

    @abc.abstractmethod
    async def save_workout(self, workout: Workout) -> None: ...

    @abc.abstractmethod
    async def delete_workout(self, workout_id: str) -> None: ...

    @abc.abstractmethod
    async def get_user_info(self) -> UserInfo: ...

    @abc.abstractmethod
    async def save_user_info(self, info: UserInfo) -> None: ...

    @abc.abstractmethod
    async def get_messages(self, user_a: str, user_b: str) -> list[Message]: ...

    @abc.abstractmethod
    async def send_message(self, message: Message) -> None: ...

    @abc.abstractmethod
    async def get_weekly_goal(self) -> WeeklyGoal | None: ...

    @abc.abstractmethod
    async def save_weekly_goal(self, goal: WeeklyGoal) -> None: ...

    @abc.abstractmethod
    async def mark_gym_attendance(self, date: str, attended: bool) -> None: ...

    @abc.abstractmethod
    async def get_gym_attendance(self, start: str, end: str) -> dict[str, bool]: ...

    @abc.abstractmethod
    async def get_user_by_email(self, email: str) -> User | None: ...

    @abc.abstractmethod
    async def add_user(self, user: User) -> None: ...

    @abc.abstractmethod
    async def update_user(self, user: User) -> None: ...


def _in_range(key: str, start: str, end: str) -> bool:
    return normalize_date_key(start) <= key <= normalize_date_key(end)


def _parse_each(raw: Any, parse: Callable[[Mapping[str, Any]], T], what: str) -> list[T]:
    """Decode a stored list; malformed records are logged and skipped."""
    out: list[T] = []
    if not isinstance(raw, list):
        return out
    for item in raw:
        if not isinstance(item, dict):
            continue
        try:
            out.append(parse(item))
        except _DECODE_ERRORS as e:
            logger.warning("skipping malformed %s record: %s", what, e)
    return out


def _parse_or(raw: Any, parse: Callable[[Mapping[str, Any]], T], default: T, what: str) -> T:
    try:
        return parse(raw if isinstance(raw, dict) else {})
    except _DECODE_ERRORS as e:
        logger.warning("malformed %s record, using default: %s", what, e)
        return default


@contextlib.contextmanager
def _decoding(collection: str) -> Iterator[None]:
    # a document we cannot decode counts as a failed remote call
    try:
        yield
    except _DECODE_ERRORS as e:
        raise RemoteStoreError(f"bad {collection} document: {type(e).__name__}: {e}") from e


class LocalRepository(Repository):
    def __init__(self, sessions: async_sessionmaker[AsyncSession]):
        self.sessions = sessions

    # raw key-value access (also used for device-only keys such as current_user)

    async def get_value(self, key: str, default: Any = None) -> Any:
        try:
            async with self.sessions() as db:
                obj = await KeyValueRepo(db).get_json(key)
        except (SQLAlchemyError, ValueError) as e:
            logger.error("local read of %s failed: %s", key, e)
            return default
        return default if obj is None else obj

    async def set_value(self, key: str, obj: Any) -> None:
        async with self.sessions() as db:
            await KeyValueRepo(db).set_json(key, obj)
            await db.commit()

    async def remove_value(self, key: str) -> None:
        async with self.sessions() as db:
            await KeyValueRepo(db).remove_item(key)
            await db.commit()

    async def get_or_create_user_id(self) -> str:
        uid = await self.get_value(USER_ID)
        if isinstance(uid, str) and uid:
            return uid
        uid = make_user_id()
        await self.set_value(USER_ID, uid)
        return uid

    # daily goals

    async def get_daily_goals(self) -> DailyGoals:
        return _parse_or(await self.get_value(DAILY_GOALS), DailyGoals.from_dict, DailyGoals(), "daily goals")

    async def save_daily_goals(self, goals: DailyGoals) -> None:
        await self.set_value(DAILY_GOALS, goals.to_dict())

    # daily progress

    async def _progress_map(self) -> dict[str, DailyProgress]:
        raw = await self.get_value(DAILY_PROGRESS, {})
        out: dict[str, DailyProgress] = {}
        if not isinstance(raw, dict):
            return out
        for k, v in raw.items():
            try:
                key = normalize_date_key(k)
            except ValueError:
                logger.warning("skipping progress record with bad date key %r", k)
                continue
            fields = v if isinstance(v, dict) else {}
            try:
                if key in out:
                    # same day stored under both the ISO and the legacy day-string key
                    out[key] = out[key].merged(fields)
                else:
                    out[key] = DailyProgress.from_dict({**fields, "date": key})
            except ValidationError as e:
                logger.warning("skipping malformed progress record for %s: %s", key, e)
        return out

    async def _write_progress_map(self, progress: dict[str, DailyProgress]) -> None:
        await self.set_value(
            DAILY_PROGRESS,
            {k: {"water": p.water, "calories": p.calories} for k, p in sorted(progress.items())},
        )

    async def get_daily_progress(self, date: str) -> DailyProgress:
        key = normalize_date_key(date)
        return (await self._progress_map()).get(key) or DailyProgress(date=key)

    async def update_daily_progress(self, date: str, patch: Mapping[str, Any]) -> DailyProgress:
        key = normalize_date_key(date)
        progress = await self._progress_map()
        merged = (progress.get(key) or DailyProgress(date=key)).merged(patch)
        progress[key] = merged
        await self._write_progress_map(progress)
        return merged

    async def get_all_daily_progress(self) -> dict[str, DailyProgress]:
        return await self._progress_map()

    async def get_progress_history(self, start: str, end: str) -> list[DailyProgress]:
        progress = await self._progress_map()
        return [p for k, p in sorted(progress.items()) if _in_range(k, start, end)]

    # workouts

    async def get_workouts(self) -> list[Workout]:
        return _parse_each(await self.get_value(WORKOUTS), Workout.from_dict, "workout")

    async def save_workouts(self, workouts: list[Workout]) -> None:
        await self.set_value(WORKOUTS, [w.to_dict() for w in workouts])

    async def save_workout(self, workout: Workout) -> None:
        await self.save_workouts(upsert_workout(await self.get_workouts(), workout))

    async def delete_workout(self, workout_id: str) -> None:
        workouts = await self.get_workouts()
        await self.save_workouts([w for w in workouts if w.id != workout_id])

    # user info

    async def get_user_info(self) -> UserInfo:
        return _parse_or(await self.get_value(USER_INFO), UserInfo.from_dict, UserInfo(), "user info")

    async def save_user_info(self, info: UserInfo) -> None:
        await self.set_value(USER_INFO, info.to_dict())

    # messages

    async def _messages(self) -> list[Message]:
        return _parse_each(await self.get_value(MESSAGES), Message.from_dict, "message")

    async def get_messages(self, user_a: str, user_b: str) -> list[Message]:
        msgs = [m for m in await self._messages() if m.involves(user_a, user_b)]
        return sorted(msgs, key=lambda m: m.timestamp)

    async def send_message(self, message: Message) -> None:
        msgs = await self._messages()
        msgs.append(message)
        await self.set_value(MESSAGES, [m.to_dict() for m in msgs])

    # weekly goal (one stored object, overwritten)

    async def get_weekly_goal(self) -> WeeklyGoal | None:
        raw = await self.get_value(WEEKLY_GOALS)
        if not isinstance(raw, dict) or not raw.get("weekStart"):
            return None
        return _parse_or(raw, WeeklyGoal.from_dict, None, "weekly goal")

    async def save_weekly_goal(self, goal: WeeklyGoal) -> None:
        await self.set_value(WEEKLY_GOALS, goal.to_dict())

    # gym attendance (sparse: only attended days are stored)

    async def mark_gym_attendance(self, date: str, attended: bool) -> None:
        key = normalize_date_key(date)
        raw = await self.get_value(GYM_ATTENDANCE, {})
        attendance = dict(raw) if isinstance(raw, dict) else {}
        if attended:
            attendance[key] = True
        else:
            attendance.pop(key, None)
        await self.set_value(GYM_ATTENDANCE, attendance)

    async def get_gym_attendance(self, start: str, end: str) -> dict[str, bool]:
        raw = await self.get_value(GYM_ATTENDANCE, {})
        if not isinstance(raw, dict):
            return {}
        out: dict[str, bool] = {}
        for k, v in raw.items():
            try:
                key = normalize_date_key(k)
            except ValueError:
                continue
            if v and _in_range(key, start, end):
                out[key] = True
        return out

    # accounts

    async def _users(self) -> list[User]:
        return _parse_each(await self.get_value(USERS), User.from_dict, "user")

    async def get_user_by_email(self, email: str) -> User | None:
        for u in await self._users():
            if u.email == email:
                return u
        return None

    async def add_user(self, user: User) -> None:
        users = await self._users()
        users.append(user)
        await self.set_value(USERS, [u.to_dict() for u in users])

    async def update_user(self, user: User) -> None:
        users = [user if u.id == user.id else u for u in await self._users()]
        await self.set_value(USERS, [u.to_dict() for u in users])


class RemoteRepository(Repository):
    def __init__(self, client: DataApiClient):
        self.client = client

    async def _stamp(self, values: dict[str, Any]) -> dict[str, Any]:
        return {**values, "userId": await self.client.user_id(), "updatedAt": utcnow_iso()}

    async def get_daily_goals(self) -> DailyGoals:
        doc = await self.client.find_one("dailyGoals")
        if doc:
            with _decoding("dailyGoals"):
                return DailyGoals.from_dict(doc)
        goals = DailyGoals()
        await self.save_daily_goals(goals)
        return goals

    async def save_daily_goals(self, goals: DailyGoals) -> None:
        await self.client.upsert("dailyGoals", {}, await self._stamp(goals.to_dict()))

    async def get_daily_progress(self, date: str) -> DailyProgress:
        key = normalize_date_key(date)
        doc = await self.client.find_one("dailyProgress", {"date": key})
        with _decoding("dailyProgress"):
            return DailyProgress.from_dict(doc, date=key) if doc else DailyProgress(date=key)

    async def update_daily_progress(self, date: str, patch: Mapping[str, Any]) -> DailyProgress:
        key = normalize_date_key(date)
        merged = (await self.get_daily_progress(key)).merged(patch)
        await self.client.upsert("dailyProgress", {"date": key}, await self._stamp(merged.to_dict()))
        return merged

    async def get_all_daily_progress(self) -> dict[str, DailyProgress]:
        docs = await self.client.find("dailyProgress", {}, sort={"date": -1})
        out: dict[str, DailyProgress] = {}
        with _decoding("dailyProgress"):
            for doc in docs:
                if doc.get("date"):
                    p = DailyProgress.from_dict(doc)
                    out[p.date] = p
        return out

    async def get_progress_history(self, start: str, end: str) -> list[DailyProgress]:
        flt = {"date": {"$gte": normalize_date_key(start), "$lte": normalize_date_key(end)}}
        docs = await self.client.find("dailyProgress", flt, sort={"date": 1})
        with _decoding("dailyProgress"):
            return [DailyProgress.from_dict(d) for d in docs if d.get("date")]

    async def get_workouts(self) -> list[Workout]:
        docs = await self.client.find("workouts", {}, sort={"createdAt": -1})
        with _decoding("workouts"):
            return [Workout.from_dict(d) for d in docs]

    async def save_workouts(self, workouts: list[Workout]) -> None:
        # replace-all: drop this user's workouts then insert the new list
        await self.client.request("deleteMany", "workouts", {})
        if not workouts:
            return
        docs = []
        for w in workouts:
            d = await self._stamp(w.to_dict())
            d.setdefault("createdAt", utcnow_iso())
            docs.append(d)
        await self.client.request("insertMany", "workouts", {}, documents=docs)

    async def save_workout(self, workout: Workout) -> None:
        d = await self._stamp(workout.to_dict())
        d.setdefault("createdAt", utcnow_iso())
        await self.client.upsert("workouts", {"id": workout.id}, d)

    async def delete_workout(self, workout_id: str) -> None:
        await self.client.request("deleteOne", "workouts", {"id": workout_id})

    async def get_user_info(self) -> UserInfo:
        doc = await self.client.find_one("userInfo")
        with _decoding("userInfo"):
            return UserInfo.from_dict(doc)

    async def save_user_info(self, info: UserInfo) -> None:
        await self.client.upsert("userInfo", {}, await self._stamp(info.to_dict()))

    async def get_messages(self, user_a: str, user_b: str) -> list[Message]:
        flt = {
            "$or": [
                {"senderId": user_a, "receiverId": user_b},
                {"senderId": user_b, "receiverId": user_a},
            ]
        }
        docs = await self.client.find("messages", flt, sort={"timestamp": 1})
        with _decoding("messages"):
            return [Message.from_dict(d) for d in docs]

    async def send_message(self, message: Message) -> None:
        doc = {**message.to_dict(), "createdAt": utcnow_iso()}
        await self.client.request("insertOne", "messages", {}, document=doc)

    async def get_weekly_goal(self) -> WeeklyGoal | None:
        # findOne takes no sort; latest week via find + limit
        docs = await self.client.find("weeklyGoals", {}, sort={"weekStart": -1}, limit=1)
        doc = docs[0] if docs else None
        if not doc or not doc.get("weekStart"):
            return None
        with _decoding("weeklyGoals"):
            return WeeklyGoal.from_dict(doc)

    async def save_weekly_goal(self, goal: WeeklyGoal) -> None:
        await self.client.upsert("weeklyGoals", {"weekStart": goal.week_start}, await self._stamp(goal.to_dict()))

    async def mark_gym_attendance(self, date: str, attended: bool) -> None:
        key = normalize_date_key(date)
        if attended:
            values = await self._stamp({"date": key, "attended": True})
            values["createdAt"] = utcnow_iso()
            await self.client.upsert("gymAttendance", {"date": key}, values)
        else:
            await self.client.request("deleteOne", "gymAttendance", {"date": key})

    async def get_gym_attendance(self, start: str, end: str) -> dict[str, bool]:
        flt = {"date": {"$gte": normalize_date_key(start), "$lte": normalize_date_key(end)}}
        docs = await self.client.find("gymAttendance", flt)
        with _decoding("gymAttendance"):
            return {normalize_date_key(d["date"]): True for d in docs if d.get("date") and d.get("attended", True)}

    # users are not scoped by the device id

    async def get_user_by_email(self, email: str) -> User | None:
        doc = await self.client.find_one("users", {"email": email}, scoped=False)
        with _decoding("users"):
            return User.from_dict(doc) if doc else None

    async def add_user(self, user: User) -> None:
        await self.client.request("insertOne", "users", {}, scoped=False, document=user.to_dict())

    async def update_user(self, user: User) -> None:
        values = {**user.to_dict(), "updatedAt": utcnow_iso()}
        await self.client.upsert("users", {"id": user.id}, values, scoped=False)


class FallbackRepository(Repository):
    """
    Try `primary` (remote), on RemoteStoreError log and use `fallback` (local).
    Errors raised by the fallback propagate.
    """

    def __init__(self, primary: Repository, fallback: Repository):
        self.primary = primary
        self.fallback = fallback

    async def _call(self, op: str, *args: Any) -> Any:
        try:
            return await getattr(self.primary, op)(*args)
        except RemoteStoreError as e:
            logger.warning("remote %s failed, using local store: %s", op, e)
        return await getattr(self.fallback, op)(*args)

    async def get_daily_goals(self) -> DailyGoals:
        return await self._call("get_daily_goals")

    async def save_daily_goals(self, goals: DailyGoals) -> None:
        await self._call("save_daily_goals", goals)

    async def get_daily_progress(self, date: str) -> DailyProgress:
        return await self._call("get_daily_progress", date)

    async def update_daily_progress(self, date: str, patch: Mapping[str, Any]) -> DailyProgress:
        return await self._call("update_daily_progress", date, patch)

    async def get_all_daily_progress(self) -> dict[str, DailyProgress]:
        return await self._call("get_all_daily_progress")

    async def get_progress_history(self, start: str, end: str) -> list[DailyProgress]:
        return await self._call("get_progress_history", start, end)

    async def get_workouts(self) -> list[Workout]:
        return await self._call("get_workouts")

    async def save_workouts(self, workouts: list[Workout]) -> None:
        await self._call("save_workouts", workouts)

    async def save_workout(self, workout: Workout) -> None:
        await self._call("save_workout", workout)

    async def delete_workout(self, workout_id: str) -> None:
        await self._call("delete_workout", workout_id)

    async def get_user_info(self) -> UserInfo:
        return await self._call("get_user_info")

    async def save_user_info(self, info: UserInfo) -> None:
        await self._call("save_user_info", info)

    async def get_messages(self, user_a: str, user_b: str) -> list[Message]:
        return await self._call("get_messages", user_a, user_b)

    async def send_message(self, message: Message) -> None:
        await self._call("send_message", message)

    async def get_weekly_goal(self) -> WeeklyGoal | None:
        return await self._call("get_weekly_goal")

    async def save_weekly_goal(self, goal: WeeklyGoal) -> None:
        await self._call("save_weekly_goal", goal)

    async def mark_gym_attendance(self, date: str, attended: bool) -> None:
        await self._call("mark_gym_attendance", date, attended)

    async def get_gym_attendance(self, start: str, end: str) -> dict[str, bool]:
        return await self._call("get_gym_attendance", start, end)

    async def get_user_by_email(self, email: str) -> User | None:
        return await self._call("get_user_by_email", email)

    async def add_user(self, user: User) -> None:
        await self._call("add_user", user)

    async def update_user(self, user: User) -> None:
        await self._call("update_user", user)
