"""
Package shim for running charting tools from the repo root.

The monitor lives under `app/` and is started with `python app/main.py`, which
puts `app/` on `sys.path` so `import core.charting.*` resolves to `app/core`.
From the repo root (e.g. `python -m core.charting.cli label 719162`) that is not
the case, so this package extends its search path to `app/core`.
"""

from __future__ import annotations

import os

_HERE = os.path.abspath(os.path.dirname(__file__))
_APP_CORE = os.path.normpath(os.path.join(_HERE, "..", "app", "core"))

if os.path.isdir(_APP_CORE):
    __path__.append(_APP_CORE)  # type: ignore[name-defined]
