"""
Monthly target of a KPI.

Targets are either a number ("10") or a free-text sentinel such as
"As per deployment". Documents keep the raw value; code works with the
tagged union below so progress is only ever computed for numeric targets.
"""
import math
from dataclasses import dataclass
from typing import Optional, Union

@dataclass(frozen=True)
class NumericTarget:
    value: float

    def to_wire(self) -> Union[int, float]:
        return int(self.value) if float(self.value).is_integer() else self.value

    def progress(self, current_value: Optional[float]) -> Optional[int]:
        """Percentage of target reached, capped at 100"""
        if current_value is None or self.value <= 0 or not math.isfinite(current_value):
            return None
        return min(100, round(current_value / self.value * 100))


@dataclass(frozen=True)
class DescriptiveTarget:
    text: str

    def to_wire(self) -> str:
        return self.text

    def progress(self, current_value: Optional[float]) -> Optional[int]:
        return None


MonthlyTarget = Union[NumericTarget, DescriptiveTarget]


def parse_monthly_target(raw) -> MonthlyTarget:
    if isinstance(raw, (NumericTarget, DescriptiveTarget)):
        return raw
    if isinstance(raw, bool):
        raise ValueError("Monthly target must be a number or a description")
    if isinstance(raw, (int, float)):
        if not math.isfinite(raw):
            raise ValueError("Monthly target must be a finite number")
        return NumericTarget(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            raise ValueError("Monthly target must not be empty")
        try:
            value = float(text)
        except ValueError:
            return DescriptiveTarget(text)
        if not math.isfinite(value):
            return DescriptiveTarget(text)
        return NumericTarget(value)
    raise ValueError("Monthly target must be a number or a description")


def progress_percentage(raw_target, current_value: Optional[float]) -> Optional[int]:
    if raw_target is None:
        return None
    return parse_monthly_target(raw_target).progress(current_value)
