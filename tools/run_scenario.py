#!/usr/bin/env python3
"""
Run a holder-rewards YAML scenario against an in-memory program and print a
JSON report (per-step results, final balances, records, state digest).

Exit codes: 0 ok, 1 scenario failed, 2 bad config or missing file.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.core.holder_rewards import RewardsError
from src.integration.config import ConfigError, load_config
from src.integration.logging_setup import setup_logging
from src.integration.scenario import ScenarioError, run_scenario_file

DEFAULT_CONFIG = ROOT / "config" / "holder_rewards.yaml"

logger = logging.getLogger("run_scenario")


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Run a holder rewards scenario")
    ap.add_argument("scenario", type=Path)
    ap.add_argument("--config", type=Path, default=DEFAULT_CONFIG)
    ap.add_argument("--out", type=str, default="")
    args = ap.parse_args(argv)

    try:
        cfg = load_config(args.config if args.config.exists() else None)
    except ConfigError as exc:
        print(f"invalid config: {exc}", file=sys.stderr)
        return 2
    setup_logging(cfg.log_level)

    if not args.scenario.exists():
        print(f"missing scenario file: {args.scenario}", file=sys.stderr)
        return 2
    try:
        report = run_scenario_file(args.scenario, config=cfg)
    except (ScenarioError, RewardsError) as exc:
        logger.error("scenario failed: %s", exc)
        return 1

    text = json.dumps(report, indent=2, sort_keys=True)
    if args.out:
        Path(args.out).write_text(text + "\n", encoding="utf-8")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
