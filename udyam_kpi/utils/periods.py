import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union

PERIOD_PATTERN = re.compile(r"\d{4}-(0[1-9]|1[0-2])", re.ASCII)
_DIGITS = re.compile(r"(\d+)")


def current_period(now: Optional[datetime] = None) -> str:
    """Current reporting month as a 'YYYY-MM' token (UTC)"""
    now = now or datetime.now(timezone.utc)
    return now.strftime("%Y-%m")


def is_valid_period(value: str) -> bool:
    return bool(value) and bool(PERIOD_PATTERN.fullmatch(value))


def validate_period(value: str) -> str:
    """Pydantic-friendly validator for period tokens"""
    if not is_valid_period(value):
        raise ValueError("must be a period token formatted 'YYYY-MM'")
    return value


def natural_key(value: str) -> Tuple[Union[int, str], ...]:
    """Sort key that orders 'common2' before 'common10'"""
    return tuple(int(part) if part.isdigit() else part for part in _DIGITS.split(value or ""))


def unique_in_order(values: List[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result
