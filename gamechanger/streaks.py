from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Callable, Mapping

from gamechanger.entities import DailyGoals, DailyProgress


MAX_LOOKBACK_DAYS = 365
GOAL_RATIO = 0.8  # a day counts once 80% of the daily goal is reached


@dataclass(frozen=True)
class Streaks:
    gym: int
    eating: int
    drinking: int


def streak_length(
    today: dt.date,
    qualifies: Callable[[str], bool],
    max_days: int = MAX_LOOKBACK_DAYS,
) -> int:
    """
    Consecutive qualifying days counted backwards from `today`.

    Today not qualifying yet does not end the streak (the day isn't over);
    it just isn't counted. The first non-qualifying past day ends the scan.
    """
    streak = 0
    for i in range(max_days):
        key = (today - dt.timedelta(days=i)).isoformat()
        if qualifies(key):
            streak += 1
        elif i > 0:
            break
    return streak


def calculate_streaks(
    today: dt.date,
    progress: Mapping[str, DailyProgress],
    goals: DailyGoals,
    attendance: Mapping[str, bool],
    max_days: int = MAX_LOOKBACK_DAYS,
) -> Streaks:
    """
    Gym, eating and drinking streaks. `progress` and `attendance` must be keyed by
    ISO date; a missing record means the habit was not met that day.
    """

    def ate_enough(key: str) -> bool:
        p = progress.get(key)
        return p is not None and p.calories >= goals.calories * GOAL_RATIO

    def drank_enough(key: str) -> bool:
        p = progress.get(key)
        return p is not None and p.water >= goals.water * GOAL_RATIO

    def went_to_gym(key: str) -> bool:
        return bool(attendance.get(key))

    return Streaks(
        gym=streak_length(today, went_to_gym, max_days),
        eating=streak_length(today, ate_enough, max_days),
        drinking=streak_length(today, drank_enough, max_days),
    )
