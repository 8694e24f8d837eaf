#!/usr/bin/env python3
"""
Summarize a research log.

Reports how many log units were published, which event types they
contain and how their words were corrected.

Usage:
    python3 scripts/summarize_research_log.py [--log PATH] [--json]
"""

import argparse
import json
import sys
from collections import Counter
from pathlib import Path

from research_log.config import config
from research_log.reader import ResearchLogReader
from research_log.schema import CorrectionType, EVENT_TYPE_KEY


def summarize(log_path: Path) -> dict:
    """
    Build a summary of the units in a research log.

    Args:
        log_path: Path to JSONL research log

    Returns:
        Summary dictionary
    """
    units = ResearchLogReader.read_units(log_path)

    event_types = Counter()
    corrections = Counter()
    with_word = 0
    incomplete = 0

    for unit in units:
        for event in unit.events:
            event_types[event.get(EVENT_TYPE_KEY, "unknown")] += 1
        if unit.word:
            with_word += 1
        if unit.correction_type is not None:
            try:
                corrections[CorrectionType(unit.correction_type).name] += 1
            except ValueError:
                corrections["UNKNOWN"] += 1
        if not unit.complete:
            incomplete += 1

    return {
        "log_path": str(log_path),
        "units": len(units),
        "incomplete_units": incomplete,
        "units_with_word": with_word,
        "events": sum(event_types.values()),
        "event_types": dict(event_types.most_common()),
        "correction_types": dict(corrections),
    }


def format_summary(summary: dict) -> str:
    """Format summary as plain text."""
    lines = [
        f"Research log: {summary['log_path']}",
        f"  Units:            {summary['units']} ({summary['incomplete_units']} incomplete)",
        f"  Units with word:  {summary['units_with_word']}",
        f"  Events:           {summary['events']}",
    ]

    if summary["event_types"]:
        lines.append("")
        lines.append("Event types:")
        for name, count in summary["event_types"].items():
            lines.append(f"  {name:<30} {count}")

    if summary["correction_types"]:
        lines.append("")
        lines.append("Correction types:")
        for name, count in summary["correction_types"].items():
            lines.append(f"  {name:<30} {count}")

    return "\n".join(lines)


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Summarize a research log",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                              # Summarize the configured log
  %(prog)s --log /tmp/research.jsonl    # Summarize a specific file
  %(prog)s --json                       # Machine-readable output
        """,
    )

    parser.add_argument(
        "--log",
        type=Path,
        default=None,
        metavar="PATH",
        help="Research log file (default: research_log.log_path from config)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output summary as JSON",
    )

    args = parser.parse_args()

    log_path = args.log
    if log_path is None:
        log_path = Path(config.get('research_log.log_path')).expanduser()

    if not log_path.exists():
        print(f"Error: Research log not found: {log_path}", file=sys.stderr)
        return 1

    summary = summarize(log_path)

    if args.json:
        print(json.dumps(summary, indent=2))
    else:
        print(format_summary(summary))

    return 0


if __name__ == "__main__":
    sys.exit(main())
