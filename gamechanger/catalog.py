from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Mapping


DEFAULT_PORTION_G = 100.0


@dataclass(frozen=True)
class FoodEntry:
    name: str
    kcal_100g: float
    icon: str


@dataclass(frozen=True)
class ExerciseEntry:
    name: str
    image: str
    category: str
    description: str


# approximate kcal per 100g
FOOD_DATABASE: dict[str, FoodEntry] = {
    f.name: f
    for f in (
        FoodEntry("Apple", 52, "🍎"),
        FoodEntry("Banana", 89, "🍌"),
        FoodEntry("Orange", 47, "🍊"),
        FoodEntry("Grilled chicken", 165, "🍗"),
        FoodEntry("Cooked rice", 130, "🍚"),
        FoodEntry("Cooked pasta", 131, "🍝"),
        FoodEntry("Bread", 265, "🍞"),
        FoodEntry("Egg", 155, "🥚"),
        FoodEntry("Salad", 15, "🥗"),
        FoodEntry("Pizza", 266, "🍕"),
        FoodEntry("Burger", 295, "🍔"),
        FoodEntry("Fries", 312, "🍟"),
        FoodEntry("Fish", 206, "🐟"),
        FoodEntry("Cheese", 113, "🧀"),
        FoodEntry("Yogurt", 59, "🥛"),
        FoodEntry("Vegetables", 25, "🥕"),
        FoodEntry("Fruits", 60, "🍇"),
        FoodEntry("Meat", 250, "🥩"),
        FoodEntry("Soup", 50, "🍲"),
        FoodEntry("Sandwich", 250, "🥪"),
    )
}

# labels an image-recognition service may return, per food (EN + FR)
FOOD_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Apple": ("apple", "apples", "pomme", "pommes"),
    "Banana": ("banana", "bananas", "banane", "bananes"),
    "Orange": ("orange", "oranges"),
    "Grilled chicken": ("chicken", "grilled chicken", "poulet", "poulet grillé", "volaille"),
    "Cooked rice": ("rice", "cooked rice", "riz", "riz cuit"),
    "Cooked pasta": ("pasta", "spaghetti", "macaroni", "pâtes", "nouilles"),
    "Bread": ("bread", "baguette", "toast", "pain"),
    "Egg": ("egg", "eggs", "omelette", "œuf", "œufs"),
    "Salad": ("salad", "lettuce", "salade", "laitue", "salade verte"),
    "Pizza": ("pizza", "pizzas"),
    "Burger": ("burger", "hamburger", "cheeseburger", "sandwich burger"),
    "Fries": ("fries", "french fries", "frites", "pommes frites"),
    "Fish": ("fish", "salmon", "tuna", "poisson", "saumon", "thon"),
    "Cheese": ("cheese", "cheddar", "mozzarella", "fromage"),
    "Yogurt": ("yogurt", "yoghurt", "yaourt", "yogourt"),
    "Vegetables": ("vegetables", "carrot", "broccoli", "tomato", "légumes", "carotte", "brocoli", "tomate"),
    "Fruits": ("fruits", "fruit", "strawberry", "grape", "fraise", "raisin"),
    "Meat": ("meat", "beef", "pork", "steak", "viande", "bœuf", "porc"),
    "Soup": ("soup", "soupe", "potage"),
    "Sandwich": ("sandwich", "sandwiches", "panini"),
}

EXERCISE_DATABASE: dict[str, ExerciseEntry] = {
    e.name: e
    for e in (
        ExerciseEntry("Bench press", "🏋️", "Chest", "Builds the pectorals"),
        ExerciseEntry("Squat", "🦵", "Legs", "Quadriceps and glutes"),
        ExerciseEntry("Deadlift", "💪", "Back", "Full back and legs exercise"),
        ExerciseEntry("Overhead press", "💪", "Shoulders", "Shoulders"),
        ExerciseEntry("Pull-ups", "🤸", "Back", "Back and biceps"),
        ExerciseEntry("Push-ups", "🏃", "Chest", "Bodyweight chest exercise"),
        ExerciseEntry("Lunges", "🚶", "Legs", "Legs and glutes"),
        ExerciseEntry("Biceps curl", "💪", "Biceps", "Biceps"),
        ExerciseEntry("Triceps extension", "💪", "Triceps", "Triceps"),
        ExerciseEntry("Leg raises", "🤸", "Abs", "Abdominals"),
        ExerciseEntry("Plank", "🧘", "Abs", "Isometric core exercise"),
        ExerciseEntry("Dips", "🤸", "Triceps", "Triceps and shoulders"),
        ExerciseEntry("Rowing", "🚣", "Back", "Back and biceps"),
        ExerciseEntry("Leg press", "🦵", "Legs", "Legs"),
        ExerciseEntry("Incline bench press", "🏋️", "Chest", "Upper pectorals"),
        ExerciseEntry("Calf raises", "🦵", "Calves", "Calves"),
        ExerciseEntry("Crunches", "🤸", "Abs", "Abdominals"),
        ExerciseEntry("Burpees", "🏃", "Cardio", "Full-body cardio"),
        ExerciseEntry("Mountain climbers", "🏃", "Cardio", "Full-body cardio"),
        ExerciseEntry("Jumping jacks", "🤸", "Cardio", "Cardio"),
    )
}


def item_calories(food_name: str, portion_g: float | None = None) -> int | None:
    food = FOOD_DATABASE.get(food_name)
    if food is None:
        return None
    portion = portion_g or DEFAULT_PORTION_G
    return int(math.floor(food.kcal_100g * portion / 100 + 0.5))


def calculate_total_calories(selection: Iterable[str], portions: Mapping[str, float] | None = None) -> int:
    """Sum of per-item rounded calories; unknown foods are ignored, missing portions are 100 g."""
    portions = portions or {}
    total = 0
    for name in selection:
        kcal = item_calories(name, portions.get(name))
        if kcal is not None:
            total += kcal
    return total


def match_labels(labels: Iterable[str]) -> list[str]:
    """Map free-form recognition labels onto catalog food names (catalog order)."""
    detected = [l.lower() for l in labels if l]
    out: list[str] = []
    for name, keywords in FOOD_KEYWORDS.items():
        if any(k.lower() in label for k in keywords for label in detected):
            out.append(name)
    return out


def find_similar_foods(term: str) -> list[str]:
    t = (term or "").strip().lower()
    if not t:
        return []
    return [
        name
        for name, keywords in FOOD_KEYWORDS.items()
        if t in name.lower() or any(t in k.lower() for k in keywords)
    ]


def search_exercises(query: str) -> list[ExerciseEntry]:
    q = (query or "").lower()
    return [
        e
        for e in EXERCISE_DATABASE.values()
        if q in e.name.lower() or q in e.category.lower() or q in e.description.lower()
    ]


def exercise_categories() -> list[str]:
    return sorted({e.category for e in EXERCISE_DATABASE.values()})


def exercises_by_category() -> dict[str, list[ExerciseEntry]]:
    out: dict[str, list[ExerciseEntry]] = {c: [] for c in exercise_categories()}
    for e in EXERCISE_DATABASE.values():
        out[e.category].append(e)
    return out
