import logging
import os
import faulthandler
import sys
import time
import traceback

import numpy as np
import pyqtgraph as pg
from PyQt6.QtCore import QTimer
from PyQt6.QtWidgets import QApplication

from core.charting.ohlc import OhlcSeries, bars_from_rows
from core.charting.resolution import TICKS_PER_DAY, ResolutionClock
from core.charting.settings import load_chart_settings, open_settings
from ui.charts.resolution_axis import ResolutionAxis

_FAULT_LOG_HANDLE = None
_HOUR_MS = 3_600_000

logger = logging.getLogger(__name__)


def _install_exception_logging() -> None:
    log_path = os.path.join(os.path.dirname(__file__), "exception.log")
    def _hook(exc_type, exc_value, exc_tb):
        try:
            with open(log_path, "a", encoding="utf-8") as handle:
                handle.write("\n=== Unhandled Exception ===\n")
                traceback.print_exception(exc_type, exc_value, exc_tb, file=handle)
        except OSError:
            pass
        sys.__excepthook__(exc_type, exc_value, exc_tb)
    sys.excepthook = _hook
    import threading
    def _thread_hook(args):
        _hook(args.exc_type, args.exc_value, args.exc_traceback)
    threading.excepthook = _thread_hook


def _synthetic_rows(start_ms: int, count: int) -> np.ndarray:
    # Deterministic hourly rows: gentle trend plus bounded wiggle.
    ts = start_ms + np.arange(count, dtype=np.int64) * _HOUR_MS
    base = 100.0 + np.arange(count) * 0.05 + np.sin(np.arange(count) / 6.0) * 2.0
    opens = base
    closes = base + np.cos(np.arange(count) / 3.0) * 0.5
    highs = np.maximum(opens, closes) + 0.3
    lows = np.minimum(opens, closes) - 0.3
    return np.column_stack([ts, opens, highs, lows, closes, np.full(count, 10.0)])


class MonitorWindow(pg.PlotWidget):
    def __init__(self, clock: ResolutionClock) -> None:
        time_axis = ResolutionAxis(clock)
        super().__init__(axisItems={"bottom": time_axis})
        self.time_axis = time_axis
        self.setBackground("#131722")
        self.showGrid(x=True, y=True, alpha=0.2)
        self.setWindowTitle("Algorithm Monitor")
        self.clock = clock
        self._curve = self.plot([], [], pen=pg.mkPen('#4ADE80', width=2))
        self.series = OhlcSeries()
        self.series.add_listener(self._on_series_changed)

        now_ms = int(time.time() * 1000)
        self._rows = _synthetic_rows(now_ms - 60 * 24 * _HOUR_MS, 60 * 24)
        self._cursor = 0
        self._timer = QTimer(self)
        self._timer.timeout.connect(self._feed)
        self._timer.start(50)

    def _feed(self) -> None:
        if self._cursor >= len(self._rows):
            self._timer.stop()
            return
        chunk = self._rows[self._cursor:self._cursor + 6]
        self._cursor += len(chunk)
        self.series.extend(bars_from_rows(chunk))

    def _on_series_changed(self, series: OhlcSeries, changed_from: int) -> None:
        xs = [self.clock.to_axis_unit(bar.period_key * TICKS_PER_DAY) for bar in series]
        closes = [bar.close for bar in series]
        self._curve.setData(xs, closes)
        logger.debug("Series changed from index %d (%d bars)", changed_from, len(series))


def main():
    try:
        log_path = os.path.join(os.path.dirname(__file__), "faulthandler.log")
        # Keep the handle alive for the process lifetime; faulthandler may write later.
        global _FAULT_LOG_HANDLE
        _FAULT_LOG_HANDLE = open(log_path, "w", encoding="utf-8")
        _FAULT_LOG_HANDLE.write(f"pid={os.getpid()}\n")
        _FAULT_LOG_HANDLE.flush()
        faulthandler.enable(_FAULT_LOG_HANDLE, all_threads=True)
    except OSError:
        faulthandler.enable(all_threads=True)
    _install_exception_logging()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app = QApplication([])
    cfg = load_chart_settings(open_settings())
    window = MonitorWindow(ResolutionClock(cfg.resolution))
    window.resize(1000, 500)
    window.show()
    app.exec()

if __name__ == '__main__':
    main()
