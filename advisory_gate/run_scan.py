#!/usr/bin/env python3
"""
Command-line entry point for the install-time advisory gate.

Reads the packages an installer is about to install, scans them and prints
the advisories as JSON on stdout:

    {"advisories": [{"level": "fatal", "package": "...", "url": ..., "description": ...}]}

Exit status is 1 when any fatal advisory is present, 0 otherwise. Logs go
to stderr so stdout stays machine-readable.

Usage:
    advisory-gate --packages packages.json [--config config.yaml] [--report output]
    echo '[{"name": "left-pad", "version": "1.3.0"}]' | advisory-gate --packages -
"""
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .config import load_config, parse_args
from .errors import ConfigError
from .models import Advisory, LEVEL_FATAL
from .observability import ScanReporter
from .scanner import SecurityScanner, config_error_advisories

logger = logging.getLogger(__name__)


def load_packages(source: Optional[str]) -> List[Any]:
    """
    Load host packages from a JSON file or stdin.

    Accepts either a list of {name, version} objects or {"packages": [...]}.

    Raises:
        ConfigError: If the input cannot be read or has the wrong shape
    """
    if not source:
        return []

    try:
        if source == "-":
            data = json.load(sys.stdin)
        else:
            with open(source) as f:
                data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read packages from {source}: {e}") from e

    if isinstance(data, dict):
        data = data.get("packages")
    if not isinstance(data, list):
        raise ConfigError(f"packages input {source} must be a list")
    return data


def emit(advisories: List[Advisory]) -> int:
    print(json.dumps({"advisories": [a.to_dict() for a in advisories]}, indent=2))
    return 1 if any(a.level == LEVEL_FATAL for a in advisories) else 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point."""
    try:
        args = parse_args(argv)
    except ConfigError as e:
        return emit(config_error_advisories(e))

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        stream=sys.stderr
    )

    try:
        config = load_config(args)
        packages = load_packages(args.packages)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return emit(config_error_advisories(e, getattr(args, "lockfile", None) or "bun.lock"))

    scanner = SecurityScanner(config)
    advisories = scanner.scan(packages)

    if args.report and scanner.last_metrics is not None:
        reporter = ScanReporter()
        report = reporter.generate_report(scanner.last_metrics, advisories)
        report_path = reporter.save_report(report, Path(args.report), scanner.last_metrics.run_id)
        logger.info(f"Report: {report_path}")

    return emit(advisories)


if __name__ == "__main__":
    sys.exit(main())
