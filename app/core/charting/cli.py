from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

from core.charting.errors import ChartingError
from core.charting.ohlc import OhlcBar, bars_from_rows, merge_daily_bars
from core.charting.resolution import Resolution, format_label


def _load_json(path: str):
    try:
        with open(path, "r", encoding="utf-8") as handle:
            return json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        raise SystemExit(f"Could not read {path}: {exc}")


def _load_bars(path: str) -> List[OhlcBar]:
    payload = _load_json(path)
    if not isinstance(payload, list):
        raise SystemExit(f"Expected a JSON list of bars in {path}")
    return [OhlcBar.from_dict(item) for item in payload]


def _cmd_label(args: argparse.Namespace) -> int:
    resolution = Resolution.parse(args.resolution)
    for unit in args.axis_units:
        print(f"{unit}\t{format_label(unit, resolution)}")
    return 0


def _cmd_merge(args: argparse.Namespace) -> int:
    resolution = Resolution.parse(args.resolution)
    displayed = _load_bars(args.displayed)
    incoming = _load_bars(args.incoming)
    displayed, remaining = merge_daily_bars(displayed, incoming, resolution)
    out = {
        "displayed": [bar.to_dict() for bar in displayed],
        "remaining": [bar.to_dict() for bar in remaining],
    }
    print(json.dumps(out, indent=2))
    return 0


def _cmd_aggregate(args: argparse.Namespace) -> int:
    resolution = Resolution.parse(args.resolution)
    rows = _load_json(args.rows)
    if not isinstance(rows, list):
        raise SystemExit(f"Expected a JSON list of rows in {args.rows}")
    bars = bars_from_rows(rows, resolution)
    print(json.dumps([bar.to_dict() for bar in bars], indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Headless chart axis labels and OHLC bar merging (no UI).")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")
    sub = ap.add_subparsers(dest="command", required=True)

    label = sub.add_parser("label", help="Print axis labels for axis units")
    label.add_argument("--resolution", default="day", help="tick, second, minute, hour or day (default: day)")
    label.add_argument("axis_units", nargs="+", type=int)
    label.set_defaults(func=_cmd_label)

    merge = sub.add_parser("merge", help="Fold incoming bars into the displayed bars")
    merge.add_argument("--displayed", required=True, help="JSON file with the displayed bars")
    merge.add_argument("--incoming", required=True, help="JSON file with the incoming bars")
    merge.add_argument("--resolution", default="day", help="Only day is supported (default: day)")
    merge.set_defaults(func=_cmd_merge)

    aggregate = sub.add_parser("aggregate", help="Build bars from [ts_ms, o, h, l, c, v] rows")
    aggregate.add_argument("--rows", required=True, help="JSON file with raw OHLCV rows")
    aggregate.add_argument("--resolution", default="day")
    aggregate.set_defaults(func=_cmd_aggregate)
    return ap


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    try:
        return int(args.func(args))
    except ChartingError as exc:
        raise SystemExit(str(exc))


if __name__ == "__main__":
    raise SystemExit(main())
