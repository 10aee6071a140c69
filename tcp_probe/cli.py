from __future__ import annotations

import argparse
import sys

from .backoff import LINEAR, POLICIES
from .config import (
    DEFAULT_BACKOFF,
    DEFAULT_CONCURRENCY,
    DEFAULT_MAX_BACKOFF,
    DEFAULT_RETRIES,
    DEFAULT_TIMEOUT,
    ProbeConfig,
)
from .errors import ConfigError
from .logger import create_logger
from .output import EXIT_CONFIG_ERROR, exit_code, print_results
from .scheduler import run_probes
from .targets import collect_targets


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="tcp-probe", description="Fast TCP health probe")
    p.add_argument("targets", nargs="*", help="Target hosts (host:port)")
    p.add_argument("-f", "--file", help="Read targets from file (one per line, '#' comments)")
    p.add_argument("-t", "--timeout", default=DEFAULT_TIMEOUT, help=f"Timeout per connection attempt (default: {DEFAULT_TIMEOUT})")
    p.add_argument("-r", "--retries", type=int, default=DEFAULT_RETRIES, help=f"Number of retries on failure (default: {DEFAULT_RETRIES})")
    p.add_argument("--backoff", default=DEFAULT_BACKOFF, help=f"Base delay between retries (default: {DEFAULT_BACKOFF})")
    p.add_argument("--backoff-policy", choices=POLICIES, default=LINEAR, help=f"How the delay grows per retry (default: {LINEAR})")
    p.add_argument("--max-backoff", default=DEFAULT_MAX_BACKOFF, help=f"Cap on a single backoff delay (default: {DEFAULT_MAX_BACKOFF})")
    p.add_argument("-c", "--concurrency", type=int, default=DEFAULT_CONCURRENCY, help=f"Concurrent probe limit (default: {DEFAULT_CONCURRENCY})")
    p.add_argument("--deadline", help="Stop the whole run after this long; unfinished targets fail as cancelled")
    p.add_argument("--json", action="store_true", help="Output as JSON")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Log probe events to stderr (-vv for every attempt)")
    p.add_argument("--log-file", help="Also write log events to this file")
    return p


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        logger = create_logger(args.verbose, args.log_file)
    except OSError as e:
        print(f"error: cannot open log file: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        config = ProbeConfig.from_args(args)
        targets = collect_targets(args.targets, args.file)
    except ConfigError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    summary = run_probes(targets, config, logger=logger)
    print_results(summary, as_json=args.json)
    return exit_code(summary)
