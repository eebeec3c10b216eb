from __future__ import annotations

from typing import Any, Sequence

from gamechanger.entities import Exercise, Serie, Workout, new_id
from gamechanger.errors import ValidationError
from gamechanger.validators import parse_int_or, parse_number


def build_series(
    sets: Any,
    default_reps: Any = 0,
    default_weight: Any = 0,
    default_rest_time: Any = 0,
    existing: Sequence[Serie] = (),
) -> list[Serie]:
    """Resize to `sets` series: existing ones are kept, new ones get the defaults."""
    n = parse_int_or(sets)
    if n <= 0:
        raise ValidationError("The number of sets must be greater than 0", field="sets")

    reps = parse_int_or(default_reps)
    weight = parse_number(default_weight) or 0.0
    rest = parse_int_or(default_rest_time)

    out: list[Serie] = []
    for i in range(n):
        if i < len(existing):
            out.append(existing[i])
        else:
            out.append(Serie(reps=reps, weight=weight, rest_time=rest))
    return out


def build_exercise(
    *,
    name: str,
    sets: Any,
    default_reps: Any = 0,
    default_weight: Any = 0,
    default_rest_time: Any = 0,
    series: Sequence[Serie] = (),
    image_uri: str | None = None,
    exercise_id: str | None = None,
) -> Exercise:
    if not (name or "").strip():
        raise ValidationError("Please enter a name for the exercise", field="name")
    return Exercise(
        id=exercise_id or new_id(),
        name=name,
        default_reps=parse_int_or(default_reps),
        default_weight=parse_number(default_weight) or 0.0,
        default_rest_time=parse_int_or(default_rest_time),
        image_uri=image_uri,
        series=build_series(sets, default_reps, default_weight, default_rest_time, existing=series),
    )


def build_workout(*, name: str, exercises: Sequence[Exercise], workout_id: str | None = None) -> Workout:
    if not (name or "").strip():
        raise ValidationError("Please enter a name for the workout", field="name")
    if not exercises:
        raise ValidationError("Please add at least one exercise", field="exercises")
    return Workout(id=workout_id or new_id(), name=name, exercises=list(exercises))


def upsert_workout(workouts: Sequence[Workout], workout: Workout) -> list[Workout]:
    out = list(workouts)
    for i, w in enumerate(out):
        if w.id == workout.id:
            out[i] = workout
            return out
    out.append(workout)
    return out
