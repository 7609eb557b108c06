from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from .errors import PreconditionViolation, UnsupportedResolution
from .resolution import Resolution, TimeStamp, axis_modifier

logger = logging.getLogger(__name__)


@dataclass
class OhlcBar:
    period_key: int
    open: float
    high: float
    low: float
    close: float

    def __post_init__(self) -> None:
        self.period_key = int(self.period_key)
        self.open = float(self.open)
        self.high = float(self.high)
        self.low = float(self.low)
        self.close = float(self.close)
        if not (self.low <= self.open <= self.high and self.low <= self.close <= self.high):
            raise PreconditionViolation(
                f"Bar {self.period_key} violates low <= open, close <= high: "
                f"o={self.open} h={self.high} l={self.low} c={self.close}"
            )

    def fold(self, other: "OhlcBar") -> None:
        # Open is fixed at period start; only extremes and close move.
        self.high = max(self.high, other.high)
        self.low = min(self.low, other.low)
        self.close = other.close

    def to_dict(self) -> dict:
        return {
            "period_key": self.period_key,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "OhlcBar":
        try:
            return cls(
                period_key=payload["period_key"],
                open=payload["open"],
                high=payload["high"],
                low=payload["low"],
                close=payload["close"],
            )
        except KeyError as exc:
            raise PreconditionViolation(f"Bar is missing field {exc.args[0]!r}: {payload}") from None


def _check_sorted(bars: Sequence[OhlcBar], name: str) -> None:
    for idx in range(1, len(bars)):
        if bars[idx].period_key < bars[idx - 1].period_key:
            raise PreconditionViolation(
                f"{name} bars are not sorted by period: "
                f"{bars[idx - 1].period_key} before {bars[idx].period_key} at index {idx}"
            )


def merge_daily_bars(
    displayed: List[OhlcBar],
    incoming: List[OhlcBar],
    resolution: Resolution = Resolution.DAY,
) -> Tuple[List[OhlcBar], List[OhlcBar]]:
    """
    Fold incoming bars for already displayed periods into the last displayed bar.

    Both lists are changed in place and returned: the last displayed bar takes
    the running high/low and the latest close, and folded bars are removed from
    the head of ``incoming``. What remains in ``incoming`` is strictly newer than
    anything displayed. Only Day resolution is supported.
    """
    # Checked before the empty case: a non-Day call fails even with nothing displayed.
    if resolution is not Resolution.DAY:
        raise UnsupportedResolution(
            resolution, f"Resolution {resolution!r} is not supported. Only Day is supported."
        )
    if not displayed:
        return displayed, incoming
    # Only the tail of displayed is read; its full order is the owner's invariant.
    if len(displayed) > 1 and displayed[-1].period_key < displayed[-2].period_key:
        raise PreconditionViolation(
            f"displayed bars are not sorted by period: "
            f"{displayed[-2].period_key} before {displayed[-1].period_key}"
        )
    _check_sorted(incoming, "incoming")

    last = displayed[-1]
    last_key = last.period_key
    folded = 0
    while folded < len(incoming) and incoming[folded].period_key <= last_key:
        last.fold(incoming[folded])
        folded += 1
    if folded:
        del incoming[:folded]
        logger.debug("Folded %d bar(s) into period %d", folded, last_key)
    return displayed, incoming


def bars_from_rows(rows: Iterable[Sequence[float]], resolution: Resolution = Resolution.DAY) -> List[OhlcBar]:
    """Aggregate raw ``[ts_ms, open, high, low, close, volume]`` rows into one bar per period."""
    modifier = axis_modifier(resolution)
    bars: List[OhlcBar] = []
    skipped = 0
    for row in rows:
        if not isinstance(row, (list, tuple, np.ndarray)) or len(row) < 5:
            skipped += 1
            continue
        try:
            ts_ms = int(row[0])
            prices = np.asarray(row[1:5], dtype=np.float64)
        except (ValueError, TypeError, OverflowError):
            skipped += 1
            continue
        if not np.all(np.isfinite(prices)) or np.any(prices <= 0):
            skipped += 1
            continue
        o, h, l, c = (float(v) for v in prices)
        try:
            bar = OhlcBar(TimeStamp.from_unix_ms(ts_ms).elapsed_ticks // modifier, o, h, l, c)
        except ValueError:
            skipped += 1
            continue
        if bars and bar.period_key < bars[-1].period_key:
            raise PreconditionViolation(
                f"Rows are not sorted by time: period {bar.period_key} after {bars[-1].period_key}"
            )
        if bars and bar.period_key == bars[-1].period_key:
            bars[-1].fold(bar)
        else:
            bars.append(bar)
    if skipped:
        logger.debug("Skipped %d malformed row(s)", skipped)
    return bars


SeriesListener = Callable[["OhlcSeries", int], None]


class OhlcSeries:
    """
    Displayed bar sequence for one chart.

    The series owns its bars: ``extend`` folds same-period updates into the
    last bar, appends newer ones and notifies listeners with the first index
    that changed.
    """

    def __init__(self, resolution: Resolution = Resolution.DAY, bars: Optional[Iterable[OhlcBar]] = None) -> None:
        if resolution is not Resolution.DAY:
            raise UnsupportedResolution(
                resolution, f"Resolution {resolution!r} is not supported. Only Day is supported."
            )
        self.resolution = resolution
        self.bars: List[OhlcBar] = [replace(bar) for bar in (bars or [])]
        _check_sorted(self.bars, "displayed")
        self._listeners: List[SeriesListener] = []

    def __len__(self) -> int:
        return len(self.bars)

    def __iter__(self) -> Iterator[OhlcBar]:
        return iter(self.bars)

    @property
    def last(self) -> Optional[OhlcBar]:
        return self.bars[-1] if self.bars else None

    def add_listener(self, callback: SeriesListener) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_listener(self, callback: SeriesListener) -> None:
        try:
            self._listeners.remove(callback)
        except ValueError:
            pass

    def extend(self, incoming: Iterable[OhlcBar]) -> int:
        pending = list(incoming)
        if not pending:
            return 0
        _check_sorted(pending, "incoming")
        before = len(self.bars)
        snapshot = None
        if self.bars:
            last = self.bars[-1]
            snapshot = (last.high, last.low, last.close)
        merge_daily_bars(self.bars, pending, self.resolution)
        appended = 0
        for bar in pending:
            # The remainder may still carry several samples for one new period.
            if len(self.bars) > before and bar.period_key == self.bars[-1].period_key:
                self.bars[-1].fold(bar)
            else:
                # Copy so later folds never reach the caller's bar.
                self.bars.append(replace(bar))
                appended += 1

        changed_from: Optional[int] = None
        if snapshot is not None:
            last = self.bars[before - 1]
            if (last.high, last.low, last.close) != snapshot:
                changed_from = before - 1
        if appended and changed_from is None:
            changed_from = before
        if changed_from is not None:
            self._notify(changed_from)
        return appended

    def _notify(self, changed_from: int) -> None:
        error: Optional[Exception] = None
        for callback in list(self._listeners):
            try:
                callback(self, changed_from)
            except Exception as exc:
                logger.exception("Series listener %r failed", callback)
                error = exc
        if error is not None:
            raise error
