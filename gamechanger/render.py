from __future__ import annotations

from typing import Iterable, Mapping

from tabulate import tabulate

from gamechanger import catalog
from gamechanger.entities import DailyGoals, DailyProgress, Workout
from gamechanger.streaks import Streaks


def _fmt(x: float) -> str:
    return f"{x:g}"


def progress_line(progress: DailyProgress, goals: DailyGoals) -> str:
    return (
        f"Water: {_fmt(progress.water)}/{_fmt(goals.water)} L | "
        f"Calories: {_fmt(progress.calories)}/{_fmt(goals.calories)} kcal"
    )


def streaks_line(streaks: Streaks) -> str:
    return f"Gym: {streaks.gym} d | Eating: {streaks.eating} d | Drinking: {streaks.drinking} d"


def calories_summary_table(selection: Iterable[str], portions: Mapping[str, float] | None = None) -> str:
    portions = portions or {}
    rows = []
    names = [n for n in selection if n in catalog.FOOD_DATABASE]
    for name in names:
        food = catalog.FOOD_DATABASE[name]
        portion = portions.get(name) or catalog.DEFAULT_PORTION_G
        rows.append([f"{food.icon} {name}", _fmt(portion), catalog.item_calories(name, portion)])
    rows.append(["Total", "", catalog.calculate_total_calories(names, portions)])

    return tabulate(rows, headers=["Food", "g", "kcal"], tablefmt="github")


def workout_table(workout: Workout) -> str:
    tbl_rows = []
    for e in workout.exercises:
        for i, s in enumerate(e.series, start=1):
            tbl_rows.append([e.name if i == 1 else "", i, s.reps, _fmt(s.weight), s.rest_time])

    return tabulate(
        tbl_rows,
        headers=["Exercise", "Set", "Reps", "kg", "Rest (s)"],
        tablefmt="github",
    )
