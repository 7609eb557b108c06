from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, Tuple

from .ohlc import OhlcBar
from .resolution import Resolution, TimeStamp, axis_modifier


class ResolutionProvider(Protocol):
    @property
    def axis_modifier(self) -> int: ...


@dataclass(frozen=True)
class TimeStampChartPoint:
    x: TimeStamp
    y: float


@dataclass(frozen=True)
class TimeStampOhlcChartPoint:
    x: TimeStamp
    open: float
    high: float
    low: float
    close: float

    def to_bar(self, resolution: Resolution = Resolution.DAY) -> OhlcBar:
        period_key = self.x.elapsed_ticks // axis_modifier(resolution)
        return OhlcBar(period_key, self.open, self.high, self.low, self.close)


class TimeStampChartPointMapper:
    """Maps timestamped points onto the chart's axis units."""

    def __init__(self, provider: ResolutionProvider) -> None:
        self.provider = provider

    def x(self, point: TimeStampChartPoint) -> float:
        return point.x.elapsed_ticks / self.provider.axis_modifier

    def y(self, point: TimeStampChartPoint) -> float:
        return float(point.y)

    def map(self, point: TimeStampChartPoint) -> Tuple[float, float]:
        return self.x(point), self.y(point)


class OhlcTimeStampChartPointMapper:
    def __init__(self, provider: ResolutionProvider) -> None:
        self.provider = provider

    def x(self, point: TimeStampOhlcChartPoint) -> float:
        return point.x.elapsed_ticks / self.provider.axis_modifier

    def map(self, point: TimeStampOhlcChartPoint) -> Tuple[float, float, float, float, float]:
        return (
            self.x(point),
            float(point.open),
            float(point.high),
            float(point.low),
            float(point.close),
        )
