from __future__ import annotations

import random
import string
import time
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from gamechanger.dates import normalize_date_key
from gamechanger.errors import ValidationError


PROGRESS_FIELDS: tuple[str, ...] = ("water", "calories")
PROGRAMS: tuple[str, ...] = ("maintain", "weight_loss", "weight_gain")

DEFAULT_WATER_GOAL = 2.0
DEFAULT_CALORIES_GOAL = 2000.0


def new_id() -> str:
    # epoch milliseconds, same shape the mobile client uses for workouts/exercises
    return str(int(time.time() * 1000))


def make_user_id() -> str:
    alphabet = string.ascii_lowercase + string.digits
    suffix = "".join(random.choice(alphabet) for _ in range(9))
    return f"user_{new_id()}_{suffix}"


def _non_negative(value: Any, name: str) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a number", field=name) from None
    if v != v or v < 0:  # NaN or negative
        raise ValidationError(f"{name} must be >= 0", field=name)
    return v


def _opt_non_negative(value: Any, name: str) -> float | None:
    if value is None or value == "":
        return None
    return _non_negative(value, name)


def _loose_int(value: Any) -> int:
    # series fields arrive as strings from form state ("12", "", None)
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return 0


def _loose_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass
class DailyGoals:
    water: float = DEFAULT_WATER_GOAL
    calories: float = DEFAULT_CALORIES_GOAL

    def __post_init__(self) -> None:
        self.water = _non_negative(self.water, "water")
        self.calories = _non_negative(self.calories, "calories")

    def to_dict(self) -> dict[str, Any]:
        return {"water": self.water, "calories": self.calories}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | None) -> DailyGoals:
        d = d or {}
        return cls(
            water=d.get("water", DEFAULT_WATER_GOAL),
            calories=d.get("calories", DEFAULT_CALORIES_GOAL),
        )


@dataclass
class DailyProgress:
    date: str
    water: float = 0.0
    calories: float = 0.0

    def __post_init__(self) -> None:
        self.date = normalize_date_key(self.date)
        self.water = _non_negative(self.water, "water")
        self.calories = _non_negative(self.calories, "calories")

    def merged(self, patch: Mapping[str, Any]) -> DailyProgress:
        """Fields absent from `patch` (or None) keep their current value."""
        changes = {k: patch[k] for k in PROGRESS_FIELDS if patch.get(k) is not None}
        return replace(self, **changes)

    def to_dict(self) -> dict[str, Any]:
        return {"date": self.date, "water": self.water, "calories": self.calories}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | None, date: str | None = None) -> DailyProgress:
        d = d or {}
        key = d.get("date") or date
        if not key:
            raise ValidationError("progress record has no date", field="date")
        return cls(date=key, water=d.get("water") or 0, calories=d.get("calories") or 0)


@dataclass
class WeeklyGoal:
    goal: int
    week_start: str
    created_at: str | None = None

    def __post_init__(self) -> None:
        try:
            g = int(self.goal)
        except (TypeError, ValueError):
            raise ValidationError("weekly goal must be a whole number", field="goal") from None
        if g < 0:
            raise ValidationError("weekly goal must be >= 0", field="goal")
        self.goal = g
        self.week_start = normalize_date_key(self.week_start)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"goal": self.goal, "weekStart": self.week_start}
        if self.created_at:
            out["createdAt"] = self.created_at
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> WeeklyGoal:
        return cls(goal=d.get("goal", 0), week_start=d["weekStart"], created_at=d.get("createdAt"))


@dataclass
class Serie:
    reps: int = 0
    weight: float = 0.0
    rest_time: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"reps": self.reps, "weight": self.weight, "restTime": self.rest_time}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Serie:
        return cls(
            reps=_loose_int(d.get("reps")),
            weight=_loose_float(d.get("weight")),
            rest_time=_loose_int(d.get("restTime")),
        )


@dataclass
class Exercise:
    id: str
    name: str
    default_reps: int = 0
    default_weight: float = 0.0
    default_rest_time: int = 0
    image_uri: str | None = None
    series: list[Serie] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("Please enter a name for the exercise", field="name")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "defaultReps": self.default_reps,
            "defaultWeight": self.default_weight,
            "defaultRestTime": self.default_rest_time,
            "imageUri": self.image_uri,
            "series": [s.to_dict() for s in self.series],
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Exercise:
        return cls(
            id=str(d.get("id") or new_id()),
            name=d.get("name") or "",
            default_reps=_loose_int(d.get("defaultReps")),
            default_weight=_loose_float(d.get("defaultWeight")),
            default_rest_time=_loose_int(d.get("defaultRestTime")),
            image_uri=d.get("imageUri"),
            series=[Serie.from_dict(s) for s in d.get("series") or []],
        )


@dataclass
class Workout:
    id: str
    name: str
    exercises: list[Exercise] = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None

    def __post_init__(self) -> None:
        self.name = (self.name or "").strip()
        if not self.name:
            raise ValidationError("Please enter a name for the workout", field="name")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "exercises": [e.to_dict() for e in self.exercises],
        }
        if self.created_at:
            out["createdAt"] = self.created_at
        if self.updated_at:
            out["updatedAt"] = self.updated_at
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Workout:
        return cls(
            id=str(d.get("id") or new_id()),
            name=d.get("name") or "",
            exercises=[Exercise.from_dict(e) for e in d.get("exercises") or []],
            created_at=d.get("createdAt"),
            updated_at=d.get("updatedAt"),
        )


_USER_INFO_KEYS = {
    "name": "name",
    "email": "email",
    "username": "username",
    "phone": "phone",
    "age": "age",
    "gender": "gender",
    "weight": "weight",
    "height": "height",
    "profile_image": "profileImage",
    "program": "program",
}


@dataclass
class UserInfo:
    name: str | None = None
    email: str | None = None
    username: str | None = None
    phone: str | None = None
    age: int | None = None
    gender: str | None = None
    weight: float | None = None
    height: float | None = None
    profile_image: str | None = None
    program: str | None = None

    def __post_init__(self) -> None:
        self.weight = _opt_non_negative(self.weight, "weight")
        self.height = _opt_non_negative(self.height, "height")
        if self.age is not None:
            self.age = int(_non_negative(self.age, "age"))
        if self.program is not None and self.program not in PROGRAMS:
            raise ValidationError(f"unknown program: {self.program}", field="program")

    def to_dict(self) -> dict[str, Any]:
        return {wire: getattr(self, attr) for attr, wire in _USER_INFO_KEYS.items()}

    @classmethod
    def from_dict(cls, d: Mapping[str, Any] | None) -> UserInfo:
        d = d or {}
        return cls(**{attr: d.get(wire) for attr, wire in _USER_INFO_KEYS.items()})


@dataclass
class User:
    id: str
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone: str = ""
    weight: float | None = None
    height: float | None = None
    age: int = 30
    gender: str = "male"
    username: str | None = None
    created_at: str | None = None

    def __post_init__(self) -> None:
        self.email = (self.email or "").strip()
        if not self.email:
            raise ValidationError("email is required", field="email")
        self.weight = _opt_non_negative(self.weight, "weight")
        self.height = _opt_non_negative(self.height, "height")
        self.age = int(_non_negative(self.age, "age"))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def public_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "phone": self.phone,
            "weight": self.weight,
            "height": self.height,
            "age": self.age,
            "gender": self.gender,
            "username": self.username,
            "createdAt": self.created_at,
        }

    def to_dict(self) -> dict[str, Any]:
        out = self.public_dict()
        out["passwordHash"] = self.password_hash
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> User:
        return cls(
            id=str(d["id"]),
            email=d.get("email") or "",
            password_hash=d.get("passwordHash") or "",
            first_name=d.get("firstName") or "",
            last_name=d.get("lastName") or "",
            phone=d.get("phone") or "",
            weight=d.get("weight"),
            height=d.get("height"),
            age=d.get("age") or 30,
            gender=d.get("gender") or "male",
            username=d.get("username"),
            created_at=d.get("createdAt"),
        )


@dataclass
class Message:
    id: str
    sender_id: str
    receiver_id: str
    timestamp: str
    text: str = ""
    type: str = "text"  # text/workout
    workout: dict[str, Any] | None = None

    def involves(self, a: str, b: str) -> bool:
        return (self.sender_id, self.receiver_id) in {(a, b), (b, a)}

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "timestamp": self.timestamp,
            "text": self.text,
            "type": self.type,
        }
        if self.workout is not None:
            out["workout"] = self.workout
        return out

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Message:
        return cls(
            id=str(d.get("id") or new_id()),
            sender_id=str(d["senderId"]),
            receiver_id=str(d["receiverId"]),
            timestamp=d.get("timestamp") or "",
            text=d.get("text") or "",
            type=d.get("type") or "text",
            workout=d.get("workout"),
        )
