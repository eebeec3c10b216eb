from __future__ import annotations

import math
from typing import Literal

from gamechanger.entities import DailyGoals, DEFAULT_CALORIES_GOAL, DEFAULT_WATER_GOAL


BmiCategory = Literal["underweight", "normal", "overweight", "obese"]

ACTIVITY_FACTOR = 1.5  # sedentary to moderately active
PROGRAM_KCAL_DELTA = 500
MIN_CALORIES = 1200
WATER_L_PER_KG = 0.035
MIN_WATER_L = 1.5

_WATER_MULTIPLIER = {
    "weight_loss": 1.1,
    "weight_gain": 1.15,
}

_PROGRAM_NAMES = {
    "weight_loss": "Weight loss",
    "weight_gain": "Mass gain",
    "maintain": "Maintain",
}

_PROGRAM_DESCRIPTIONS = {
    "weight_loss": "Calorie deficit to lose weight in a healthy way",
    "weight_gain": "Calorie surplus to build muscle mass",
    "maintain": "Keep the current weight with a balanced calorie intake",
}


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def bmr_mifflin_st_jeor(weight_kg: float | None, height_cm: float | None, age: int = 30, gender: str = "male") -> float | None:
    # BMR = 10W + 6.25H - 5A + s
    if not weight_kg or not height_cm:
        return None
    s = 5 if gender == "male" else -161
    return 10 * weight_kg + 6.25 * height_cm - 5 * age + s


def maintenance_calories(bmr: float) -> int:
    return _round_half_up(bmr * ACTIVITY_FACTOR)


def calculate_calories(
    program: str | None,
    weight_kg: float | None,
    height_cm: float | None,
    age: int = 30,
    gender: str = "male",
) -> int:
    b = bmr_mifflin_st_jeor(weight_kg, height_cm, age=age, gender=gender)
    if not b:
        return int(DEFAULT_CALORIES_GOAL)

    maintenance = maintenance_calories(b)
    if program == "weight_loss":
        return max(MIN_CALORIES, maintenance - PROGRAM_KCAL_DELTA)
    if program == "weight_gain":
        return maintenance + PROGRAM_KCAL_DELTA
    # maintain and anything unknown
    return maintenance


def calculate_water(program: str | None, weight_kg: float | None) -> float:
    """Liters per day, rounded to the nearest 0.25 L, never below 1.5 L."""
    if not weight_kg:
        return DEFAULT_WATER_GOAL
    base = weight_kg * WATER_L_PER_KG * _WATER_MULTIPLIER.get(program or "maintain", 1.0)
    return max(MIN_WATER_L, _round_half_up(base * 4) / 4)


def targets_for_program(
    program: str | None,
    weight_kg: float | None,
    height_cm: float | None,
    age: int | None = None,
    gender: str | None = None,
) -> DailyGoals:
    return DailyGoals(
        water=calculate_water(program, weight_kg),
        calories=calculate_calories(program, weight_kg, height_cm, age=age or 30, gender=gender or "male"),
    )


def calculate_bmi(weight_kg: float | None, height_cm: float | None) -> float | None:
    if not weight_kg or not height_cm:
        return None
    h = height_cm / 100
    return round(weight_kg / (h * h), 1)


def bmi_category(bmi: float | None) -> BmiCategory | None:
    if bmi is None:
        return None
    if bmi < 18.5:
        return "underweight"
    if bmi < 25:
        return "normal"
    if bmi < 30:
        return "overweight"
    return "obese"


def program_name(program: str | None) -> str:
    return _PROGRAM_NAMES.get(program or "", _PROGRAM_NAMES["maintain"])


def program_description(program: str | None) -> str:
    return _PROGRAM_DESCRIPTIONS.get(program or "", _PROGRAM_DESCRIPTIONS["maintain"])
