from __future__ import annotations

import pytest

from gamechanger.nutrition import (
    bmi_category,
    bmr_mifflin_st_jeor,
    calculate_bmi,
    calculate_calories,
    calculate_water,
    maintenance_calories,
    program_description,
    program_name,
    targets_for_program,
)


def test_bmr_male() -> None:
    assert bmr_mifflin_st_jeor(70, 175, age=30, gender="male") == pytest.approx(1648.75)


def test_bmr_female_offset() -> None:
    male = bmr_mifflin_st_jeor(60, 165, age=25, gender="male")
    female = bmr_mifflin_st_jeor(60, 165, age=25, gender="female")
    assert male - female == pytest.approx(166)


def test_bmr_missing_inputs() -> None:
    assert bmr_mifflin_st_jeor(None, 175) is None
    assert bmr_mifflin_st_jeor(70, 0) is None


def test_maintain_is_bmr_times_activity() -> None:
    assert maintenance_calories(1648.75) == 2473
    assert calculate_calories("maintain", 70, 175, age=30, gender="male") == 2473


def test_loss_and_gain_offsets() -> None:
    assert calculate_calories("weight_loss", 70, 175) == 2473 - 500
    assert calculate_calories("weight_gain", 70, 175) == 2473 + 500


def test_loss_never_below_floor() -> None:
    # tiny, older person: maintenance - 500 is far below 1200
    assert calculate_calories("weight_loss", 35, 140, age=90, gender="female") == 1200


def test_calories_default_without_measurements() -> None:
    assert calculate_calories("maintain", None, None) == 2000


def test_water_maintain_rounds_to_quarter_liter() -> None:
    assert calculate_water("maintain", 80) == 2.75


def test_water_program_multipliers() -> None:
    # 80 * 0.035 * 1.1 = 3.08 -> 3.0 ; * 1.15 = 3.22 -> 3.25
    assert calculate_water("weight_loss", 80) == 3.0
    assert calculate_water("weight_gain", 80) == 3.25


def test_water_floor_and_default() -> None:
    assert calculate_water("maintain", 30) == 1.5
    assert calculate_water("maintain", None) == 2


def test_targets_for_program() -> None:
    goals = targets_for_program("maintain", 80, 175, age=30, gender="male")
    assert goals.water == 2.75
    assert goals.calories == 2623


def test_bmi() -> None:
    assert calculate_bmi(70, 175) == 22.9
    assert bmi_category(22.9) == "normal"
    assert bmi_category(18.4) == "underweight"
    assert bmi_category(27) == "overweight"
    assert bmi_category(30) == "obese"
    assert calculate_bmi(None, 175) is None
    assert bmi_category(None) is None


def test_program_name_defaults_to_maintain() -> None:
    assert program_name("weight_loss") == "Weight loss"
    assert program_name(None) == program_name("maintain")
    assert program_description("bulk") == program_description("maintain")
    assert program_description("weight_gain") != program_description("maintain")
