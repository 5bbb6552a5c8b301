"""Command-line entry point writing a host snapshot as JSON."""

import argparse
import logging
from pathlib import Path
from typing import List, Optional

from hostprobe.config import Settings, get_settings
from hostprobe.logging_config import setup_logging
from hostprobe.services.snapshot import build_report, take_snapshot

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hostprobe",
        description=(
            "Capture host identity, virtualization verdict, per-core CPU usage\n"
            "and memory totals, and print them as a JSON document."
        ),
    )
    parser.add_argument(
        "--root",
        help="Filesystem root to read evidence from (default: HOSTPROBE_ROOT or /)",
    )
    parser.add_argument(
        "--interval",
        type=float,
        help="Seconds between the two CPU counter captures (default: HOSTPROBE_SAMPLE_INTERVAL or 1.0)",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Write the document to this file instead of stdout.",
    )
    parser.add_argument(
        "--compact",
        action="store_true",
        help="Emit single-line JSON.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    overrides = {}
    if args.root:
        overrides["root_path"] = args.root
    if args.interval is not None:
        overrides["sample_interval_seconds"] = args.interval
    settings = Settings(**{**get_settings().model_dump(), **overrides})

    setup_logging(settings)

    report = build_report(take_snapshot(settings))
    document = report.model_dump_json(indent=None if args.compact else 2)

    if args.output:
        Path(args.output).write_text(document + "\n", encoding="utf-8")
        logger.info("Snapshot written to %s", args.output)
    else:
        print(document)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
