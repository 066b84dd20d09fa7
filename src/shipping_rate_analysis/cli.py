# src/shipping_rate_analysis/cli.py
from __future__ import annotations

import argparse
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path

from .config.env import get_app_env
from .config.logging_config import get_logger
from .errors import RateAnalysisError, UploadError
from .io.paths import derive_output_paths
from .pipelines.analysis_processor import AnalysisProcessor
from .rules.field_classifier import CONSERVATIVE, PERMISSIVE


def _service_markup(text: str) -> tuple[str, Decimal]:
    key, sep, pct = text.partition("=")
    if not sep or not key.strip() or not pct.strip():
        raise argparse.ArgumentTypeError(f"expected CATEGORY=PERCENT, got {text!r}")
    try:
        value = Decimal(pct.strip())
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"markup percentage must be a number, got {pct.strip()!r}") from None
    if not value.is_finite():
        raise argparse.ArgumentTypeError(f"markup percentage must be finite, got {pct.strip()!r}")
    return key.strip(), value


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="shipping-rate-analysis",
        description="Re-rate a shipment history file against your carrier accounts and save the analysis.",
    )
    p.add_argument("input", type=Path, help="Path to the input .csv or .xlsx file.")
    p.add_argument("--accounts", type=Path, default=None,
                   help="JSON file listing carrier accounts to quote against.")
    source = p.add_mutually_exclusive_group()
    source.add_argument("--quotes-replay", type=Path, default=None,
                        help="JSON file of recorded quote responses for deterministic runs.")
    source.add_argument("--use-api", action="store_true",
                        help="Call the quoting service at QUOTE_SERVICE_URL.")
    p.add_argument("--overrides", type=Path, default=None,
                   help="JSON file of per-user carrier code overrides and service mappings.")
    p.add_argument("--user-id", default=None, help="User whose overrides apply and who owns the analysis.")
    p.add_argument("--markup", type=float, default=None,
                   help="Global markup percentage (default: RATE_ANALYSIS_MARKUP_PERCENT or 0).")
    p.add_argument("--service-markup", type=_service_markup, action="append", default=[],
                   metavar="CATEGORY=PCT",
                   help="Per-service markup; repeatable. Replaces the global markup.")
    p.add_argument("--mapping-mode", choices=(CONSERVATIVE, PERMISSIVE), default=None,
                   help="Header matching mode (default: RATE_ANALYSIS_MAPPING_MODE or conservative).")
    p.add_argument("--origin-zip", default=None, help="Origin ZIP applied to every row.")
    p.add_argument("--min-service-confidence", type=float, default=0.0,
                   help="Orphan shipments whose service classification scores below this.")
    p.add_argument("--store-dir", type=Path, default=None,
                   help="Directory for saved analyses (default: <input dir>/_rate_analyses).")
    p.add_argument("--batch-size", type=int, default=None, help="Rows per processing batch.")
    p.add_argument("--max-workers", type=int, default=None, help="Concurrent quote requests.")
    p.add_argument("--no-console", action="store_true",
                   help="Disable console logging (file logging remains).")
    p.add_argument("--log-level", default="INFO",
                   help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: INFO")
    p.add_argument("--strict-env", action="store_true",
                   help="Require QUOTE_SERVICE_URL/TOKEN to be present; otherwise exit 2.")
    return p


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        store_dir, log_path = derive_output_paths(args.input, args.store_dir)
    except FileNotFoundError:
        print(f"error: input file not found: {args.input}", file=sys.stderr)
        return 2

    logger = get_logger(
        "shipping_rate_analysis",
        level=args.log_level,
        console=not args.no_console,
        log_file=log_path,
    )
    logger.info("Input: %s", args.input)
    logger.info("Analysis store: %s", store_dir)
    logger.info("Log file: %s", log_path)

    try:
        env_cfg = get_app_env(strict=args.strict_env or args.use_api)
    except RuntimeError as e:
        logger.error("Environment error: %s", e)
        return 2

    # Lazy imports keep startup light for --help and env failures.
    from .io.accounts import load_accounts
    from .io.overrides import OverrideStore
    from .io.store import JsonAnalysisStore
    from .rules.carrier_registry import DEFAULT_REGISTRY
    from .rules.markup import MarkupConfig
    from .rules.service_normalizer import ServiceNormalizer

    try:
        accounts = load_accounts(args.accounts) if args.accounts else []
        overrides = OverrideStore.load(args.overrides) if args.overrides else None
    except (FileNotFoundError, ValueError) as e:
        logger.error("Could not load configuration file: %s", e)
        return 2

    registry = DEFAULT_REGISTRY
    normalizer = ServiceNormalizer()
    if overrides is not None and args.user_id:
        registry = overrides.registry_for(args.user_id)
        normalizer = overrides.normalizer_for(args.user_id)
        logger.info("Applied overrides for user %s", args.user_id)
    elif overrides is not None:
        logger.warning("--overrides given without --user-id; overrides are ignored")

    client = None
    if args.quotes_replay:
        from .api.client import ReplayQuoteClient

        try:
            client = ReplayQuoteClient(args.quotes_replay)
        except ValueError as e:
            logger.error("%s", e)
            return 2
        logger.info("Replay mode enabled: %s", args.quotes_replay)
    elif args.use_api:
        from .api.quote_service import QuoteServiceClient, QuoteServiceConfig

        client = QuoteServiceClient(
            QuoteServiceConfig(base_url=env_cfg.QUOTE_SERVICE_URL, token=env_cfg.QUOTE_SERVICE_TOKEN),
            logger=logger,
        )
        logger.info("Quoting service enabled (base=%s)", env_cfg.QUOTE_SERVICE_URL)

    if args.service_markup:
        markup = MarkupConfig.per_service(dict(args.service_markup))
    else:
        markup = MarkupConfig.global_markup(
            args.markup if args.markup is not None else env_cfg.MARKUP_PERCENT)

    try:
        processor = AnalysisProcessor(
            logger,
            client=client,
            accounts=accounts,
            registry=registry,
            normalizer=normalizer,
            markup=markup,
            mapping_mode=args.mapping_mode or env_cfg.MAPPING_MODE,
            origin_zip=args.origin_zip,
            min_service_confidence=args.min_service_confidence,
            batch_size=args.batch_size or env_cfg.BATCH_SIZE,
            max_workers=args.max_workers or env_cfg.MAX_WORKERS,
            store=JsonAnalysisStore(store_dir),
            user_id=args.user_id,
            duplicate_window_seconds=env_cfg.DUPLICATE_WINDOW_SECONDS,
        )
        result = processor.process(args.input)
    except FileNotFoundError as e:
        logger.error("Input missing: %s", e)
        return 2
    except UploadError as e:
        logger.error("Unreadable upload: %s", e)
        return 2
    except RateAnalysisError as e:
        logger.error("Analysis failed: %s", e)
        return 1
    except Exception as e:
        logger.exception("Failed to analyze shipments: %s", e)
        return 1

    totals = result.resolution.totals
    logger.info(
        "Analysis %s%s: %d priced, %d orphaned, total %s",
        result.analysis_id, " (duplicate)" if result.duplicate else "",
        result.processed_count, len(result.orphans), totals.total_final,
    )
    logger.info("Done.")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
