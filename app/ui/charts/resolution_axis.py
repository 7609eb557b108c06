from __future__ import annotations

import math
from typing import List, Optional

import pyqtgraph as pg
from PyQt6.QtGui import QColor, QFont

from core.charting.resolution import ResolutionClock


class ResolutionAxis(pg.AxisItem):
    """Bottom axis whose values are axis units of a ResolutionClock."""

    def __init__(self, clock: Optional[ResolutionClock] = None, *args, **kwargs) -> None:
        kwargs.setdefault('orientation', 'bottom')
        super().__init__(*args, **kwargs)
        self.clock = clock or ResolutionClock()
        font = QFont()
        font.setPointSize(7)
        self.setTickFont(font)
        self.setStyle(autoExpandTextSpace=False, tickTextOffset=2)
        self.setHeight(38)

    def set_clock(self, clock: ResolutionClock) -> None:
        # Labels rendered for the previous resolution are stale.
        self.clock = clock
        self.picture = None
        self.update()

    def _pick_step(self, span: float, target_ticks: int) -> int:
        if span <= 0:
            return 1
        magnitude = 1
        while True:
            for mult in (1, 2, 5):
                step = mult * magnitude
                if span / step <= target_ticks:
                    return step
            magnitude *= 10

    def tickValues(self, minVal, maxVal, size):
        try:
            lo = float(minVal)
            hi = float(maxVal)
        except (TypeError, ValueError):
            return []
        if not (math.isfinite(lo) and math.isfinite(hi)) or hi <= lo:
            return []
        target_ticks = max(2, int(size / 120))
        step = self._pick_step(hi - lo, target_ticks)
        start = math.ceil(lo / step) * step
        values: List[int] = []
        current = start
        while current <= hi:
            values.append(current)
            current += step
        return [(step, values)]

    def tickStrings(self, values, scale, spacing):
        return [self.clock.x_formatter(v) for v in values]

    def generateDrawSpecs(self, p):
        axis_spec, tick_specs, text_specs = super().generateDrawSpecs(p)
        if axis_spec is not None:
            axis_spec = (pg.mkPen(QColor(0, 0, 0, 0)), axis_spec[1], axis_spec[2])
        return (axis_spec, tick_specs, text_specs)

