from __future__ import annotations

import math
import re
from typing import Any

from gamechanger.errors import ValidationError


MIN_PASSWORD_LEN = 6
MAX_HEIGHT_CM = 300

_LEADING_NUMBER = re.compile(r"^\s*([+-]?\d+(?:[.,]\d+)?)")


def parse_number(raw: Any) -> float | None:
    """
    Lenient form parsing: leading number of the text, comma accepted as decimal point.
    Returns None when no number can be read.
    """
    if raw is None:
        return None
    if isinstance(raw, (int, float)) and not isinstance(raw, bool):
        v = float(raw)
        return v if math.isfinite(v) else None
    m = _LEADING_NUMBER.match(str(raw))
    if not m:
        return None
    return float(m.group(1).replace(",", "."))


def parse_int_or(raw: Any, default: int = 0) -> int:
    v = parse_number(raw)
    return int(v) if v is not None else default


def parse_positive(raw: Any, message: str = "Please enter a valid value", field: str | None = None) -> float:
    v = parse_number(raw)
    if v is None or v <= 0:
        raise ValidationError(message, field=field)
    return v


def parse_measurements(weight_raw: Any, height_raw: Any) -> tuple[float, float]:
    weight = parse_positive(weight_raw, "Please enter a valid weight", field="weight")
    height = parse_positive(height_raw, "Please enter a valid height", field="height")
    if height > MAX_HEIGHT_CM:
        raise ValidationError("Height must be in centimeters (e.g. 175)", field="height")
    return weight, height


def validate_password(password: str | None) -> str:
    if not password or len(password) < MIN_PASSWORD_LEN:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LEN} characters", field="password")
    return password


def validate_password_change(old: str | None, new: str | None, confirm: str | None = None) -> str:
    if not old or not new or (confirm is not None and not confirm):
        raise ValidationError("Please fill in all fields")
    validate_password(new)
    if confirm is not None and new != confirm:
        raise ValidationError("The new passwords do not match", field="password")
    if old == new:
        raise ValidationError("The new password must differ from the old one", field="password")
    return new
