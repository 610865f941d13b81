from __future__ import annotations

import math
from typing import Optional

from .config import AGE_MAX, AGE_MIN, PLACEHOLDER


_SEX_ALIASES = {
    "m": "M",
    "male": "M",
    "men": "M",
    "man": "M",
    "f": "F",
    "female": "F",
    "women": "F",
    "woman": "F",
}


def parse_time_to_seconds(raw_value: Optional[str]) -> Optional[float]:
    """Parse "mm:ss" or "hh:mm:ss" into seconds.

    Every part must be a non-negative number (decimals allowed, e.g. "17:05.4").
    Anything else returns None so callers can treat it as absent input.
    """
    text = (raw_value or "").strip()
    if not text:
        return None

    parts = [p.strip() for p in text.split(":")]
    if len(parts) not in {2, 3}:
        return None

    nums: list[float] = []
    for part in parts:
        if not part:
            return None
        try:
            value = float(part)
        except ValueError:
            return None
        if not math.isfinite(value) or value < 0:
            return None
        nums.append(value)

    seconds = 0.0
    for value in nums:
        seconds = seconds * 60 + value
    if not math.isfinite(seconds):
        return None
    return seconds


def seconds_to_time(seconds: Optional[float]) -> str:
    """Format seconds as m:ss or h:mm:ss (whole seconds, rounded half up)."""
    if seconds is None:
        return PLACEHOLDER
    try:
        value = float(seconds)
    except (TypeError, ValueError):
        return PLACEHOLDER
    if not math.isfinite(value) or value <= 0:
        return PLACEHOLDER

    total = _round_half_up(value)
    hours = total // 3600
    minutes = (total % 3600) // 60
    sec = total % 60

    if hours > 0:
        return f"{hours}:{minutes:02d}:{sec:02d}"
    return f"{minutes}:{sec:02d}"


def format_input_time(raw_value: Optional[str]) -> str:
    seconds = parse_time_to_seconds(raw_value)
    if seconds is None or seconds <= 0:
        return PLACEHOLDER
    return seconds_to_time(seconds)


def format_percent(value: Optional[float], *, decimals: int = 2) -> str:
    if value is None:
        return PLACEHOLDER
    return f"{float(value):.{max(0, int(decimals))}f}%"


def clamp_age(value: Optional[float], *, age_min: int = AGE_MIN, age_max: int = AGE_MAX) -> Optional[int]:
    if value is None:
        return None
    try:
        n = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(n):
        return None
    if n < age_min:
        return age_min
    if n > age_max:
        return age_max
    return _round_half_up(n)


def parse_age(raw_value: object) -> Optional[int]:
    if raw_value is None:
        return None
    if isinstance(raw_value, (int, float)) and not isinstance(raw_value, bool):
        return clamp_age(raw_value)
    text = str(raw_value).strip()
    if not text:
        # Blank means "not entered yet", not age 0 clamped to the minimum.
        return None
    try:
        return clamp_age(float(text))
    except ValueError:
        return None


def normalize_sex(value: str) -> str:
    key = (value or "").strip().lower()
    if key not in _SEX_ALIASES:
        raise ValueError(f"Unknown sex: {value!r} (expected M or F)")
    return _SEX_ALIASES[key]


def other_sex(sex: str) -> str:
    return "F" if sex == "M" else "M"


def sex_label(sex: str) -> str:
    return "Male" if sex == "M" else "Female"


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))
