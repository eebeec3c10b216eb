from __future__ import annotations

import datetime as dt
import json
from typing import Any


def _default(obj: Any) -> Any:
    if isinstance(obj, (dt.datetime, dt.date)):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"), default=_default)


def loads(s: str | None) -> Any:
    if not s:
        return None
    return json.loads(s)


def utcnow_iso() -> str:
    # millisecond precision with trailing Z, same shape the mobile client writes
    now = dt.datetime.now(dt.timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"
