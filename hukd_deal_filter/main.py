"""
Main entry point for the HotUKDeals Deal Filter system.
"""

import argparse
import asyncio
import json
import sys
from typing import List, Optional

from .components.filter_engine import evaluate
from .components.match_details import format_match_summary, match_details_to_dict
from .models.deal import CandidateDeal
from .models.filter import FilterConfig
from .orchestrator import ApplicationOrchestrator
from .services.config_manager import ConfigurationManager
from .utils.logging import get_logger, setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hukd-deal-filter",
        description="Filter HotUKDeals listings per channel and deliver alerts.",
    )
    parser.add_argument("-c", "--config", help="Path to the configuration file")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("run", help="Run the sweep loop until interrupted")
    subparsers.add_parser("sweep", help="Flush quiet-hours queues once")
    subparsers.add_parser("purge", help="Delete expired deal records and queue entries")

    preview = subparsers.add_parser(
        "preview", help="Evaluate a deal title against a search configuration"
    )
    preview.add_argument("search_term", help="Search term to match")
    preview.add_argument("title", help="Deal title")
    preview.add_argument("--merchant", help="Deal merchant")
    preview.add_argument("--price", help='Deal price, e.g. "£49.99"')
    preview.add_argument("--discount", type=float, help="Deal discount percentage")
    preview.add_argument("--include", action="append", default=[], help="Required keyword")
    preview.add_argument("--exclude", action="append", default=[], help="Excluded keyword")
    preview.add_argument("--case-sensitive", action="store_true")
    preview.add_argument("--exact-phrase", action="store_true")
    preview.add_argument("--max-price", type=float)
    preview.add_argument("--min-discount", type=float)
    preview.add_argument("--json", action="store_true", help="Print match evidence as JSON")

    return parser


def run_preview(args: argparse.Namespace) -> int:
    """Print how a deal would be classified, without touching the store."""
    config = FilterConfig(
        search_term=args.search_term,
        include_keywords=args.include,
        exclude_keywords=args.exclude,
        case_sensitive=args.case_sensitive,
        max_price=args.max_price,
        min_discount=args.min_discount,
        exact_phrase=args.exact_phrase,
    )
    deal = CandidateDeal(
        id="preview",
        title=args.title,
        link="https://www.hotukdeals.com/",
        search_term=args.search_term,
        price=args.price,
        merchant=args.merchant,
        savings_percentage=args.discount,
    )

    result = evaluate(deal, config)

    if args.json:
        print(
            json.dumps(
                {
                    "passed": result.passed,
                    "filterStatus": result.filter_status.value,
                    "filterReason": result.filter_reason,
                    "matchDetails": match_details_to_dict(result.match_details),
                },
                indent=2,
                ensure_ascii=False,
            )
        )
    else:
        print(f"Status:  {result.filter_status.value}")
        if result.filter_reason:
            print(f"Reason:  {result.filter_reason}")
        print(f"Summary: {format_match_summary(result.match_details, args.search_term)}")
        print(f"Excludes: {result.match_details.exclude_keyword_status}")

    return 0 if result.passed else 1


def _setup_logging_from_config(config_path: Optional[str]) -> None:
    config = ConfigurationManager(config_path).load_config()
    setup_logging(log_dir=config.log_dir, log_level=config.log_level)


def main(argv: Optional[List[str]] = None) -> int:
    """Main application entry point."""
    args = build_parser().parse_args(argv)

    if args.command == "preview":
        return run_preview(args)

    try:
        _setup_logging_from_config(args.config)
    except (ValueError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logger = get_logger("main")
    orchestrator = ApplicationOrchestrator(args.config)

    try:
        if args.command == "run":
            logger.info(
                "Starting HotUKDeals Deal Filter system", extra={"config_path": args.config}
            )
            asyncio.run(orchestrator.run())
            return 0

        if not orchestrator.initialize():
            return 1

        if args.command == "sweep":
            result = orchestrator.sweep_once()
            print(
                f"Flushed {len(result.flushed)} channel(s), "
                f"{result.delivered_count} deal(s) delivered; "
                f"{len(result.still_quiet)} still quiet, {len(result.failed)} failed"
            )
            return 1 if result.failed else 0

        if args.command == "purge":
            counts = orchestrator.purge_once()
            print(
                f"Purged {counts['deals']} deal record(s) and "
                f"{counts['queued_deals']} queued deal(s)"
            )
            return 0

    except KeyboardInterrupt:
        print("\nShutdown requested by user")
        return 0
    except Exception as e:
        logger.error("Application failed", extra={"error": str(e)}, exc_info=True)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
