from __future__ import annotations

from dataclasses import dataclass

from PyQt6.QtCore import QSettings

from .resolution import Resolution

RESOLUTION_KEY = "chart/resolution"


@dataclass
class ChartSettings:
    resolution: Resolution = Resolution.DAY


def open_settings() -> QSettings:
    return QSettings('AlgorithmMonitor', 'AlgorithmMonitor')


def load_chart_settings(settings: QSettings) -> ChartSettings:
    raw = settings.value(RESOLUTION_KEY)
    if raw is None or raw == "":
        return ChartSettings()
    # An unknown stored name raises rather than silently falling back.
    return ChartSettings(resolution=Resolution.parse(str(raw)))


def save_chart_settings(settings: QSettings, cfg: ChartSettings) -> None:
    settings.setValue(RESOLUTION_KEY, cfg.resolution.value)
    settings.sync()
