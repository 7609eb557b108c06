from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
import math
from typing import Dict, Union

from .errors import UnsupportedResolution


TICKS_PER_MICROSECOND = 10
TICKS_PER_MILLISECOND = 10_000
TICKS_PER_SECOND = 10_000_000
TICKS_PER_MINUTE = 60 * TICKS_PER_SECOND
TICKS_PER_HOUR = 60 * TICKS_PER_MINUTE
TICKS_PER_DAY = 24 * TICKS_PER_HOUR

# 1970-01-01 counted from 0001-01-01.
UNIX_EPOCH_TICKS = 719_162 * TICKS_PER_DAY

OUT_OF_RANGE_LOW = ">>>"
OUT_OF_RANGE_HIGH = "<<<"

_EPOCH = datetime(1, 1, 1)


class Resolution(Enum):
    TICK = "tick"
    SECOND = "second"
    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"

    @classmethod
    def parse(cls, value: Union["Resolution", str]) -> "Resolution":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            if key == "ticks":
                key = "tick"
            for member in cls:
                if member.value == key:
                    return member
        raise UnsupportedResolution(value)


_AXIS_MODIFIERS: Dict[Resolution, int] = {
    Resolution.TICK: 1,
    Resolution.SECOND: TICKS_PER_SECOND,
    Resolution.MINUTE: TICKS_PER_MINUTE,
    Resolution.HOUR: TICKS_PER_HOUR,
    Resolution.DAY: TICKS_PER_DAY,
}

# Templates render yyyy-MM-dd HH:mm:ss style labels. Years are padded by hand
# because strftime('%Y') does not zero-pad years below 1000 on every platform.
_DATE = "{0.year:04d}-{0.month:02d}-{0.day:02d}"
SECOND_LABEL_FORMAT = _DATE + " {0.hour:02d}:{0.minute:02d}:{0.second:02d}"
MINUTE_LABEL_FORMAT = _DATE + " {0.hour:02d}:{0.minute:02d}"
HOUR_LABEL_FORMAT = _DATE + " {0.hour:02d}:00"
DAY_LABEL_FORMAT = _DATE

_LABEL_FORMATS: Dict[Resolution, str] = {
    Resolution.TICK: SECOND_LABEL_FORMAT,
    Resolution.SECOND: SECOND_LABEL_FORMAT,
    Resolution.MINUTE: MINUTE_LABEL_FORMAT,
    Resolution.HOUR: HOUR_LABEL_FORMAT,
    Resolution.DAY: DAY_LABEL_FORMAT,
}


def _lookup(table: Dict[Resolution, object], resolution: object):
    if not isinstance(resolution, Resolution):
        raise UnsupportedResolution(resolution)
    try:
        return table[resolution]
    except KeyError:
        raise UnsupportedResolution(resolution) from None


@dataclass(frozen=True, order=True)
class TimeStamp:
    """Absolute time as 100ns ticks since 0001-01-01 00:00:00."""

    elapsed_ticks: int

    MIN_TICKS = 0
    MAX_TICKS = 3_155_378_975_999_999_999

    @classmethod
    def from_ticks(cls, ticks: int) -> "TimeStamp":
        ticks = int(ticks)
        if ticks < cls.MIN_TICKS or ticks > cls.MAX_TICKS:
            raise ValueError(f"Ticks out of range: {ticks}")
        return cls(ticks)

    @classmethod
    def from_datetime(cls, dt: datetime) -> "TimeStamp":
        if dt.tzinfo is not None:
            dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
        delta = dt - _EPOCH
        ticks = (delta.days * 86_400 + delta.seconds) * TICKS_PER_SECOND
        return cls.from_ticks(ticks + delta.microseconds * TICKS_PER_MICROSECOND)

    @classmethod
    def from_unix_ms(cls, ts_ms: int) -> "TimeStamp":
        return cls.from_ticks(UNIX_EPOCH_TICKS + int(ts_ms) * TICKS_PER_MILLISECOND)

    @classmethod
    def min_value(cls) -> "TimeStamp":
        return cls(cls.MIN_TICKS)

    @classmethod
    def max_value(cls) -> "TimeStamp":
        return cls(cls.MAX_TICKS)

    @property
    def elapsed_days(self) -> int:
        return self.elapsed_ticks // TICKS_PER_DAY

    def as_datetime(self) -> datetime:
        return _EPOCH + timedelta(microseconds=self.elapsed_ticks // TICKS_PER_MICROSECOND)


def axis_modifier(resolution: Resolution) -> int:
    return _lookup(_AXIS_MODIFIERS, resolution)


def format_label(axis_unit: int, resolution: Resolution) -> str:
    """
    Render the label for an X axis unit.

    Ticks outside the TimeStamp range return ">>>" (below) or "<<<" (above)
    so panning past the data never fails.
    """
    ticks = int(axis_unit) * axis_modifier(resolution)
    fmt = _lookup(_LABEL_FORMATS, resolution)
    if ticks < TimeStamp.MIN_TICKS:
        return OUT_OF_RANGE_LOW
    if ticks > TimeStamp.MAX_TICKS:
        return OUT_OF_RANGE_HIGH
    return fmt.format(TimeStamp(ticks).as_datetime())


class ResolutionClock:
    """Resolution provider for a single chart. The resolution is fixed once set."""

    def __init__(self, resolution: Resolution = Resolution.DAY) -> None:
        self._axis_modifier = axis_modifier(resolution)
        self._resolution = resolution

    def __repr__(self) -> str:
        return f"ResolutionClock({self._resolution!r})"

    @property
    def resolution(self) -> Resolution:
        return self._resolution

    @property
    def axis_modifier(self) -> int:
        return self._axis_modifier

    def to_ticks(self, axis_unit: int) -> int:
        return int(axis_unit) * self._axis_modifier

    def to_axis_unit(self, ticks: int) -> int:
        return int(ticks) // self._axis_modifier

    def format_label(self, axis_unit: int) -> str:
        return format_label(axis_unit, self._resolution)

    def x_formatter(self, value: float) -> str:
        try:
            val = float(value)
        except (TypeError, ValueError):
            return ""
        if not math.isfinite(val):
            return ""
        return self.format_label(int(val))
