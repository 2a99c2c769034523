"""Command-line entry point: evaluate snapshots or raw bars against a profile."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from composite_engine.config import get_settings
from composite_engine.contracts import FeatureSnapshot, TradeStyle
from composite_engine.engines.evaluator import CompositeEvaluator, EvaluationFunnel
from composite_engine.engines.run_gate import always_run, run_gate_from_settings
from composite_engine.profiles import PROFILES, ParameterProfile, get_profile, load_profile

logger = logging.getLogger(__name__)


def _resolve_profile(args: argparse.Namespace) -> ParameterProfile:
    if args.profile_file:
        return load_profile(args.profile_file)
    if args.profile:
        return get_profile(args.profile)
    settings = get_settings()
    if settings.profile_file:
        return load_profile(settings.profile_file)
    return get_profile(settings.active_profile)


def _build_evaluator(args: argparse.Namespace) -> CompositeEvaluator:
    settings = get_settings()
    style = TradeStyle(args.style) if args.style else settings.trade_style
    run_gate = always_run if args.ignore_market_hours else run_gate_from_settings(settings)
    return CompositeEvaluator(
        profile=_resolve_profile(args),
        style=style,
        run_gate=run_gate,
        max_workers=settings.max_workers,
    )


def _load_snapshots(path: str) -> list[FeatureSnapshot]:
    raw = json.loads(Path(path).read_text())
    items = raw if isinstance(raw, list) else [raw]
    return [FeatureSnapshot.model_validate(item) for item in items]


def _print_signals(signals_by_snapshot: list[list]) -> None:
    payload = [s.to_dict() for signals in signals_by_snapshot for s in signals]
    json.dump(payload, sys.stdout, indent=2)
    sys.stdout.write("\n")


def cmd_evaluate(args: argparse.Namespace) -> int:
    evaluator = _build_evaluator(args)
    snapshots = _load_snapshots(args.snapshot)
    if len(snapshots) == 1:
        funnel = EvaluationFunnel()
        results = [evaluator.evaluate(snapshots[0], funnel=funnel)]
        funnel.log_summary()
    else:
        results = evaluator.evaluate_many(snapshots)
    _print_signals(results)
    return 0


def cmd_evaluate_bars(args: argparse.Namespace) -> int:
    import pandas as pd

    from composite_engine.features.technical import build_snapshot

    df = pd.read_csv(args.bars)
    snapshot = build_snapshot(
        args.symbol,
        df,
        session_open=args.session_open,
        prior_day_high=args.prior_day_high,
        prior_day_low=args.prior_day_low,
        regular_session_minutes=get_settings().regular_session_minutes,
    )
    evaluator = _build_evaluator(args)
    funnel = EvaluationFunnel()
    signals = evaluator.evaluate(snapshot, funnel=funnel)
    funnel.log_summary()
    _print_signals([signals])
    return 0


def cmd_profiles(args: argparse.Namespace) -> int:
    for name, profile in PROFILES.items():
        scores = ", ".join(f"{s.value}={v:g}" for s, v in profile.min_score_by_style.items())
        enabled = ", ".join(t.value for t in profile.enabled_detectors)
        print(f"{name:<13} min[{scores}] vwap±{profile.vwap_proximity_percent:g}% "
              f"trend≥{profile.trend_min_score:g}")
        print(f"{'':<13} detectors: {enabled}")
    return 0


def _add_engine_options(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--profile", type=str, choices=sorted(PROFILES),
                       help="Built-in profile (default: settings.active_profile)")
    group.add_argument("--profile-file", type=str, help="Path to a YAML profile")
    parser.add_argument("--style", type=str, choices=[s.value for s in TradeStyle],
                        help="Trade style threshold set (default: settings.trade_style)")
    parser.add_argument("--ignore-market-hours", action="store_true",
                        help="Evaluate even outside regular trading hours")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="composite-engine", description="Composite opportunity engine")
    parser.add_argument("--log-level", type=str, default=None, help="Override settings.log_level")
    sub = parser.add_subparsers(dest="command", required=True)

    p_eval = sub.add_parser("evaluate", help="Evaluate FeatureSnapshot JSON (object or list)")
    p_eval.add_argument("snapshot", type=str, help="Path to snapshot JSON")
    _add_engine_options(p_eval)
    p_eval.set_defaults(func=cmd_evaluate)

    p_bars = sub.add_parser("evaluate-bars", help="Build a snapshot from OHLCV CSV and evaluate it")
    p_bars.add_argument("bars", type=str, help="CSV with time,open,high,low,close,volume")
    p_bars.add_argument("--symbol", type=str, required=True)
    p_bars.add_argument("--session-open", type=float, default=None,
                        help="Epoch seconds of the regular-session open (default: first bar)")
    p_bars.add_argument("--prior-day-high", type=float, default=None)
    p_bars.add_argument("--prior-day-low", type=float, default=None)
    _add_engine_options(p_bars)
    p_bars.set_defaults(func=cmd_evaluate_bars)

    p_prof = sub.add_parser("profiles", help="List built-in parameter profiles")
    p_prof.set_defaults(func=cmd_profiles)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=(args.log_level or get_settings().log_level).upper(),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )

    try:
        return args.func(args)
    except (ValueError, OSError) as e:  # includes pydantic ValidationError, ConfigurationError
        logger.error("%s", e)
        return 2


if __name__ == "__main__":
    sys.exit(main())
