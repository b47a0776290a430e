"""Run one market-research scan from the command line.

Usage:
    python -m market_scan.main '{"focusKeyword": "SaaS x AI"}'
    python -m market_scan.main '{"focusKeyword": "D2C x SNS", "geography": "USA", "language": "en"}'
    python -m market_scan.main --profile commerce_influencer
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from market_scan.config import load_settings
from market_scan.errors import ConfigError, MarketScanError
from market_scan.pipeline import run_pipeline
from market_scan.prompts import list_profiles

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Market research scan")
    parser.add_argument(
        "overrides",
        nargs="?",
        default=None,
        help='JSON object overriding the pipeline input, e.g. \'{"focusKeyword": "SaaS x AI"}\'',
    )
    parser.add_argument("--profile", default=None, help="Workflow profile name (prompts/<name>.yaml)")
    parser.add_argument("--output", type=Path, default=None, help="Also write the result JSON here")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    args = parse_args(argv)

    overrides = None
    if args.overrides:
        try:
            overrides = json.loads(args.overrides)
        except json.JSONDecodeError as e:
            logger.error(f"Overrides must be a JSON object: {e}")
            return 2
        if not isinstance(overrides, dict):
            logger.error("Overrides must be a JSON object")
            return 2

    try:
        settings = load_settings()
    except ConfigError as e:
        logger.error(str(e))
        return 1

    if args.profile and args.profile not in list_profiles(settings.prompts_dir):
        logger.error(
            f"Unknown profile '{args.profile}'. "
            f"Available: {', '.join(list_profiles(settings.prompts_dir))}"
        )
        return 1

    try:
        result = asyncio.run(run_pipeline(overrides, settings=settings, profile=args.profile))
    except MarketScanError as e:
        logger.error(f"Workflow execution failed: {type(e).__name__}: {e}")
        return 1

    output = json.dumps(result.to_wire(), ensure_ascii=False, indent=2)
    print("\n--- Market Research Workflow Result ---")
    print(output)
    if args.output:
        args.output.parent.mkdir(parents=True, exist_ok=True)
        args.output.write_text(output + "\n", encoding="utf-8")
        logger.info(f"Wrote result to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
