# src/main.py - v2
"""CLI entry point for inspecting and operating the content cache.

Usage:
    driftcache fingerprint <file>
    driftcache compare <file_a> <file_b>
    driftcache normalize <id>... [--explain]
    driftcache check <id> <file> [--threshold T]
    driftcache store <id> <content_file> <artifact_file> [--threshold T]
    driftcache revise <id> <artifact_file>
    driftcache show <id>
    driftcache stats
    driftcache clear

A file argument of "-" reads stdin.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from contextlib import closing
from pathlib import Path

from driftcache.cache.errors import CacheError, RecordNotFoundError
from driftcache.config.settings import ConfigurationError
from driftcache.version import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_INTERRUPTED = 130


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        _setup_logging(args.verbose)
    except (ConfigurationError, OSError, ValueError) as exc:
        # Logging is not configured yet
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    if not hasattr(args, "func"):
        parser.print_help()
        return EXIT_ERROR

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return EXIT_INTERRUPTED
    except RecordNotFoundError as exc:
        logger.error("%s", exc)
        return EXIT_NOT_FOUND
    except (CacheError, ConfigurationError, OSError, ValueError) as exc:
        logger.error("Error: %s", exc, exc_info=args.verbose)
        return EXIT_ERROR


def _build_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="driftcache",
        description=f"driftcache v{__version__}: fuzzy content cache",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command")

    # --- fingerprint ---
    p_fp = subparsers.add_parser("fingerprint", help="Print the SimHash of a text file")
    p_fp.add_argument("file", help="Text file, or - for stdin")
    p_fp.set_defaults(func=_cmd_fingerprint)

    # --- compare ---
    p_cmp = subparsers.add_parser("compare", help="Compare two text files")
    p_cmp.add_argument("file_a", help="First text file")
    p_cmp.add_argument("file_b", help="Second text file")
    p_cmp.set_defaults(func=_cmd_compare)

    # --- normalize ---
    p_norm = subparsers.add_parser("normalize", help="Show canonical cache keys")
    p_norm.add_argument("ids", nargs="+", help="Resource identifiers")
    p_norm.add_argument(
        "--explain", action="store_true",
        help="Show every normalization step",
    )
    p_norm.set_defaults(func=_cmd_normalize)

    # --- check ---
    p_check = subparsers.add_parser("check", help="Check content against the cache")
    p_check.add_argument("id", help="Resource identifier")
    p_check.add_argument("file", help="Observed content, or - for stdin")
    p_check.add_argument(
        "-t", "--threshold", type=float, default=None,
        help="Similarity threshold in [0, 1] (default: from settings)",
    )
    p_check.set_defaults(func=_cmd_check)

    # --- store ---
    p_store = subparsers.add_parser("store", help="Store content with its artifact")
    p_store.add_argument("id", help="Resource identifier")
    p_store.add_argument("content_file", help="Source content")
    p_store.add_argument("artifact_file", help="Derived artifact")
    p_store.add_argument(
        "-t", "--threshold", type=float, default=None,
        help="Similarity threshold recorded with the content",
    )
    p_store.set_defaults(func=_cmd_store)

    # --- revise ---
    p_rev = subparsers.add_parser(
        "revise", help="Replace the artifact of an existing record",
    )
    p_rev.add_argument("id", help="Resource identifier")
    p_rev.add_argument("artifact_file", help="Revised artifact")
    p_rev.set_defaults(func=_cmd_revise)

    # --- show ---
    p_show = subparsers.add_parser("show", help="Print the stored record")
    p_show.add_argument("id", help="Resource identifier")
    p_show.set_defaults(func=_cmd_show)

    # --- stats ---
    p_stats = subparsers.add_parser("stats", help="Show cache statistics")
    p_stats.set_defaults(func=_cmd_stats)

    # --- clear ---
    p_clear = subparsers.add_parser("clear", help="Drop every cached record")
    p_clear.set_defaults(func=_cmd_clear)

    return parser


async def _cmd_fingerprint(args: argparse.Namespace) -> int:
    from driftcache.cache.fingerprint import compute_simhash

    print(compute_simhash(_read_text(args.file)))
    return EXIT_OK


async def _cmd_compare(args: argparse.Namespace) -> int:
    from driftcache.cache.fingerprint import compare_content

    result = compare_content(_read_text(args.file_a), _read_text(args.file_b))
    cmp = result.comparison
    print(f"  Fingerprint A:    {result.fingerprint_a}")
    print(f"  Fingerprint B:    {result.fingerprint_b}")
    print(f"  Similarity:       {cmp.similarity:.4f}")
    print(f"  Hamming distance: {cmp.hamming_distance}")
    print(f"  Change level:     {cmp.change_level}")
    return EXIT_OK


async def _cmd_normalize(args: argparse.Namespace) -> int:
    from driftcache.cache.key_normalizer import (
        cache_key_for,
        explain_normalization,
        normalize_key,
    )

    for identifier in args.ids:
        if args.explain:
            print(json.dumps(explain_normalization(identifier).model_dump(), indent=2))
        else:
            print(normalize_key(identifier) or "<unnormalizable>")
    if len(args.ids) > 1:
        print(f"Combined key: {cache_key_for(args.ids)}")
    return EXIT_OK


async def _cmd_check(args: argparse.Namespace) -> int:
    with closing(_open_store()) as store:
        result = await store.check_cache(args.id, _read_text(args.file), args.threshold)
        status = "HIT" if result.cached else "MISS"
        similarity = "n/a" if result.similarity is None else f"{result.similarity:.4f}"
        print(f"{status} {result.key}")
        print(f"  Similarity:  {similarity} (threshold {result.threshold})")
        print(f"  Fingerprint: {result.observed_fingerprint}")
        if result.cached and result.artifact is not None:
            print()
            print(result.artifact)
        return EXIT_OK


async def _cmd_store(args: argparse.Namespace) -> int:
    with closing(_open_store()) as store:
        await store.store_content(
            args.id,
            _read_text(args.content_file),
            _read_text(args.artifact_file),
            threshold=args.threshold,
            metadata={"source": "cli"},
        )
        print(f"Stored {args.id}")
        return EXIT_OK


async def _cmd_revise(args: argparse.Namespace) -> int:
    with closing(_open_store()) as store:
        await store.update_artifact(
            args.id, _read_text(args.artifact_file), metadata={"revised_by": "cli"},
        )
        print(f"Revised {args.id}")
        return EXIT_OK


async def _cmd_show(args: argparse.Namespace) -> int:
    with closing(_open_store()) as store:
        record = await store.get_latest(args.id)
        if record is None:
            logger.error("No record for %s", args.id)
            return EXIT_NOT_FOUND
        print(record.model_dump_json(indent=2))
        return EXIT_OK


async def _cmd_stats(args: argparse.Namespace) -> int:
    with closing(_open_store()) as store:
        stats = await store.stats()
        print("\nCache statistics:")
        print(f"  Unique keys:     {stats.unique_keys}")
        print(f"  Total accesses:  {stats.total_accesses}")
        print(f"  Active (24h):    {stats.recent_activity_count}")
        print(f"  Last modified:   {stats.last_modified.isoformat()}")
        return EXIT_OK


async def _cmd_clear(args: argparse.Namespace) -> int:
    with closing(_open_store()) as store:
        await store.clear_all()
        print("Cache cleared")
        return EXIT_OK


def _open_store():
    """Build the record store described by the environment settings."""
    from driftcache.cache.cache_factory import create_record_store
    from driftcache.config.settings import load_settings

    return create_record_store(load_settings())


def _read_text(source: str) -> str:
    """Read a text file, or stdin for "-"."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _setup_logging(verbose: bool) -> None:
    """Configure logging from LOG_* settings; --verbose forces DEBUG."""
    from driftcache.config.settings import load_settings
    from driftcache.logging.logger import setup_logging_from_settings

    setup_logging_from_settings(load_settings(), level="DEBUG" if verbose else None)


if __name__ == "__main__":
    sys.exit(main())
