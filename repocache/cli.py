"""CLI entrypoints for repocache commands."""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from pathlib import Path

from .cache import StrategyCache
from .config import load_config
from .errors import CacheError
from .logging import configure_logging
from .signature import SignatureBuilder
from .warming import CacheWarmer

_DAY_MS = 24 * 60 * 60 * 1000


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
        "default": argparse.SUPPRESS if suppress_default else False,
    }
    parser.add_argument("-v", "--verbose", **kwargs)


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=".",
        help="Path to .repocache.yml or the directory holding it (defaults to cwd).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write logs to this file (overrides log_file in the config).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="repocache",
        description="Inspect and maintain the repository file-selection strategy cache.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    fingerprint_parser = subparsers.add_parser(
        "fingerprint", help="Print the signature of a local repository checkout."
    )
    _add_verbose_option(fingerprint_parser, suppress_default=True)
    _add_config_option(fingerprint_parser)
    fingerprint_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the repository root (defaults to current directory).",
    )

    stats_parser = subparsers.add_parser("stats", help="Show aggregate cache health.")
    _add_verbose_option(stats_parser, suppress_default=True)
    _add_config_option(stats_parser)

    evict_parser = subparsers.add_parser(
        "evict", help="Delete strategies that have not been used recently."
    )
    _add_verbose_option(evict_parser, suppress_default=True)
    _add_config_option(evict_parser)
    evict_parser.add_argument(
        "--max-age-days",
        type=float,
        default=None,
        help="Evict strategies unused for this many days (defaults to ttl_hours).",
    )
    evict_parser.add_argument(
        "--max-entries",
        type=int,
        default=None,
        help="Upper bound on strategies deleted in one run (defaults to max_entries).",
    )

    benchmarks_parser = subparsers.add_parser(
        "benchmarks", help="Compare current and hybrid runs of a benchmark suite."
    )
    _add_verbose_option(benchmarks_parser, suppress_default=True)
    _add_config_option(benchmarks_parser)
    benchmarks_parser.add_argument("suite", help="Benchmark test suite identifier.")

    warm_parser = subparsers.add_parser(
        "warm", help="Seed strategies for known course project layouts that are due."
    )
    _add_verbose_option(warm_parser, suppress_default=True)
    _add_config_option(warm_parser)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    _add_config_option(serve_parser)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for repocache commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(Path(args.config))
    except CacheError as exc:
        parser.exit(1, f"{exc}\n")

    configure_logging(
        verbose=bool(getattr(args, "verbose", False)),
        log_file=args.log_file or config.log_file,
        service=args.command == "serve",
    )

    if args.command == "fingerprint":
        builder = SignatureBuilder(config.exclude_patterns)
        try:
            signature = builder.scan(args.path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        print(json.dumps(signature.to_dict(), indent=2, sort_keys=True))
        return

    if args.command == "serve":  # pragma: no cover - integration path
        from .service import run_service

        run_service(args.host, args.port, lambda: StrategyCache.open(config))
        return

    try:
        with StrategyCache.open(config) as cache:
            if args.command == "stats":
                print(json.dumps(asdict(cache.get_cache_stats()), indent=2))
            elif args.command == "evict":
                max_age_ms = (
                    int(args.max_age_days * _DAY_MS)
                    if args.max_age_days is not None
                    else config.ttl_ms
                )
                max_entries = (
                    args.max_entries if args.max_entries is not None else config.max_entries
                )
                result = cache.evict_stale(max_age_ms, max_entries)
                print(f"Evicted {result.deleted_count} strategies")
            elif args.command == "benchmarks":
                comparison = cache.compare_benchmarks(args.suite)
                print(json.dumps(asdict(comparison), indent=2))
            elif args.command == "warm":
                stats = CacheWarmer(cache).warm()
                print(json.dumps(asdict(stats), indent=2))
            else:  # pragma: no cover - argparse enforces choices
                parser.exit(1, "Unknown command\n")
    except CacheError as exc:
        parser.exit(1, f"repocache {args.command} failed: {exc}\nRun with --verbose for more details.\n")


if __name__ == "__main__":
    main(sys.argv[1:])
