from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Any, Callable, Iterable, Mapping

from gamechanger import catalog, nutrition
from gamechanger.config import Settings
from gamechanger.dates import normalize_date_key, week_days, week_start
from gamechanger.entities import (
    PROGRAMS,
    PROGRESS_FIELDS,
    DailyGoals,
    DailyProgress,
    Message,
    UserInfo,
    WeeklyGoal,
    Workout,
    new_id,
)
from gamechanger.errors import ValidationError
from gamechanger.jsonutil import utcnow_iso
from gamechanger.repositories import Repository
from gamechanger.streaks import MAX_LOOKBACK_DAYS, Streaks, calculate_streaks
from gamechanger.validators import parse_measurements, parse_positive


logger = logging.getLogger(__name__)


def _check_field(field: str) -> str:
    if field not in PROGRESS_FIELDS:
        raise ValueError(f"unknown progress field: {field}")
    return field


class TrackerService:
    """What the screens call. "Today" always comes from `clock`."""

    def __init__(self, repository: Repository, cfg: Settings, clock: Callable[[], dt.date] = dt.date.today):
        self.repository = repository
        self.cfg = cfg
        self.clock = clock

    def today(self) -> str:
        return self.clock().isoformat()

    # goals

    async def get_daily_goals(self) -> DailyGoals:
        return await self.repository.get_daily_goals()

    async def save_daily_goals(self, goals: DailyGoals) -> None:
        await self.repository.save_daily_goals(goals)

    async def set_goal_value(self, field: str, raw: Any) -> DailyGoals:
        _check_field(field)
        value = parse_positive(raw, field=field)
        goals = replace(await self.get_daily_goals(), **{field: value})
        await self.save_daily_goals(goals)
        return goals

    async def save_goals_form(self, water_raw: Any, calories_raw: Any) -> DailyGoals:
        goals = DailyGoals(
            water=parse_positive(water_raw, "Please enter a valid water goal", field="water"),
            calories=parse_positive(calories_raw, "Please enter a valid calorie goal", field="calories"),
        )
        await self.save_daily_goals(goals)
        return goals

    async def apply_program(self, program: str) -> DailyGoals:
        """Store the program on the profile and recalculate daily goals from it."""
        if program not in PROGRAMS:
            raise ValidationError(f"Unknown program: {program}", field="program")
        info = await self.get_user_info()
        goals = nutrition.targets_for_program(program, info.weight, info.height, age=info.age, gender=info.gender)
        await self.save_user_info(replace(info, program=program))
        await self.save_daily_goals(goals)
        logger.info("program %s applied: %.2f L, %.0f kcal", program, goals.water, goals.calories)
        return goals

    # daily progress

    async def get_daily_progress(self, date: str | dt.date | None = None) -> DailyProgress:
        return await self.repository.get_daily_progress(normalize_date_key(date or self.today()))

    async def update_daily_progress(self, patch: Mapping[str, Any], date: str | dt.date | None = None) -> DailyProgress:
        return await self.repository.update_daily_progress(normalize_date_key(date or self.today()), patch)

    async def add_progress(self, field: str, amount: float) -> DailyProgress:
        """Adjust today's value by `amount` (negative to undo); never goes below 0."""
        _check_field(field)
        current = await self.get_daily_progress()
        value = max(0.0, getattr(current, field) + float(amount))
        return await self.update_daily_progress({field: value})

    async def log_manual_progress(self, field: str, raw: Any) -> DailyProgress:
        _check_field(field)
        return await self.add_progress(field, parse_positive(raw, field=field))

    async def add_food_calories(self, selection: Iterable[str], portions: Mapping[str, float] | None = None) -> int:
        selection = list(selection)
        kcal = catalog.calculate_total_calories(selection, portions)
        if kcal <= 0:
            raise ValidationError("Please select at least one food", field="selection")
        await self.add_progress("calories", kcal)
        return kcal

    async def progress_percentage(self, field: str) -> float:
        _check_field(field)
        goal = getattr(await self.get_daily_goals(), field)
        if goal <= 0:
            return 0.0
        value = getattr(await self.get_daily_progress(), field)
        return min(100.0, value / goal * 100)

    async def get_all_daily_progress(self) -> dict[str, DailyProgress]:
        return await self.repository.get_all_daily_progress()

    async def get_progress_history(self, start: str | dt.date, end: str | dt.date) -> list[DailyProgress]:
        return await self.repository.get_progress_history(normalize_date_key(start), normalize_date_key(end))

    # workouts

    async def get_workouts(self) -> list[Workout]:
        return await self.repository.get_workouts()

    async def save_workouts(self, workouts: list[Workout]) -> None:
        await self.repository.save_workouts(workouts)

    async def save_workout(self, workout: Workout) -> None:
        await self.repository.save_workout(workout)

    async def delete_workout(self, workout_id: str) -> None:
        await self.repository.delete_workout(workout_id)

    # profile

    async def get_user_info(self) -> UserInfo:
        return await self.repository.get_user_info()

    async def save_user_info(self, info: UserInfo) -> None:
        await self.repository.save_user_info(info)

    async def save_measurements(self, weight_raw: Any, height_raw: Any) -> UserInfo:
        weight, height = parse_measurements(weight_raw, height_raw)
        info = replace(await self.get_user_info(), weight=weight, height=height)
        await self.save_user_info(info)
        return info

    async def bmi(self) -> tuple[float | None, str | None]:
        info = await self.get_user_info()
        value = nutrition.calculate_bmi(info.weight, info.height)
        return value, nutrition.bmi_category(value)

    # chat

    async def get_messages(self, user_a: str, user_b: str) -> list[Message]:
        return await self.repository.get_messages(user_a, user_b)

    async def send_message(self, sender_id: str, receiver_id: str, text: str) -> Message:
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message is empty", field="text")
        msg = Message(id=new_id(), sender_id=sender_id, receiver_id=receiver_id, timestamp=utcnow_iso(), text=text)
        await self.repository.send_message(msg)
        return msg

    async def send_workout_message(self, sender_id: str, receiver_id: str, workout: Workout) -> Message:
        msg = Message(
            id=new_id(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            timestamp=utcnow_iso(),
            text=workout.name,
            type="workout",
            workout=workout.to_dict(),
        )
        await self.repository.send_message(msg)
        return msg

    # weekly gym goal / attendance

    async def get_weekly_goal(self) -> WeeklyGoal | None:
        return await self.repository.get_weekly_goal()

    async def set_weekly_goal(self, goal: int, week: str | dt.date | None = None) -> WeeklyGoal:
        wg = WeeklyGoal(goal=goal, week_start=week_start(week or self.clock()), created_at=utcnow_iso())
        await self.repository.save_weekly_goal(wg)
        return wg

    async def mark_gym_attendance(self, date: str | dt.date, attended: bool) -> None:
        await self.repository.mark_gym_attendance(normalize_date_key(date), attended)

    async def get_gym_attendance_for_week(self, start: str | dt.date | None = None) -> dict[str, bool]:
        """All seven days of the week starting at `start` (current week if None)."""
        days = week_days(start or week_start(self.clock()))
        attended = await self.repository.get_gym_attendance(days[0], days[-1])
        return {d: bool(attended.get(d)) for d in days}

    async def get_weekly_gym_count(self, start: str | dt.date | None = None) -> int:
        return sum(1 for v in (await self.get_gym_attendance_for_week(start)).values() if v)

    # streaks

    async def calculate_streaks(self) -> Streaks:
        today = self.clock()
        first = today - dt.timedelta(days=MAX_LOOKBACK_DAYS - 1)
        progress = await self.get_all_daily_progress()
        goals = await self.get_daily_goals()
        attendance = await self.repository.get_gym_attendance(first.isoformat(), today.isoformat())
        return calculate_streaks(today, progress, goals, attendance)

    # export

    async def export_data(self, current_user: Mapping[str, Any] | None = None) -> dict[str, Any]:
        user = dict(current_user or {})
        info = await self.get_user_info()
        return {
            "exportDate": utcnow_iso(),
            "user": {k: user.get(k) for k in ("email", "username", "firstName", "lastName", "phone")},
            "userInfo": {
                "age": info.age,
                "gender": info.gender,
                "weight": info.weight,
                "height": info.height,
                "program": info.program,
                "profileImage": "saved" if info.profile_image else None,
            },
            "dailyGoals": (await self.get_daily_goals()).to_dict(),
            "workouts": [w.to_dict() for w in await self.get_workouts()],
            "dailyProgress": (await self.get_daily_progress()).to_dict(),
        }
