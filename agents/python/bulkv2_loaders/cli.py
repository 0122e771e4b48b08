"""
Bulk API v2 Loader CLI

Submits upsert ingest jobs from CSV files and reports job status.
Credentials come from agents/python/.env (see config.py for the SF_* variables).
"""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from . import commands
from .common import CommandContext, configure_logging, default_connect


def _non_negative_minutes(value: str) -> float:
    try:
        minutes = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid number of minutes: {value!r}")
    if minutes < 0:
        raise argparse.ArgumentTypeError("must be 0 or more minutes")
    return minutes


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bulkv2",
        description="Submit and monitor Salesforce Bulk API v2 ingest jobs.",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Print a traceback when a command fails.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the command result as JSON.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    up = sub.add_parser("upsert", help="Upsert records from a CSV file through a Bulk API v2 job.")
    up.add_argument("--externalid", "-i", required=True, help="Name of the external ID field used to match records.")
    up.add_argument("--csvfile", "-f", required=True, type=Path, help="Path to the CSV file holding the records.")
    up.add_argument("--sobjecttype", "-s", required=True, help="sObject type of the records, e.g. Contact.")
    up.add_argument("--assignmentruleid", "-a", default=None, help="Assignment rule ID applied to Case or Lead records.")
    up.add_argument(
        "--wait",
        "-w",
        type=_non_negative_minutes,
        default=0,
        help="Minutes to wait for the job to finish after it is closed (default: 0, return right away).",
    )

    st = sub.add_parser("status", help="Show the current state of a Bulk API v2 job.")
    st.add_argument("--jobid", "-i", required=True, help="ID of the job to check.")
    st.add_argument(
        "--showrecords",
        action="store_true",
        help="Also fetch successful, failed and unprocessed records.",
    )
    return parser


def parse_options(parser: argparse.ArgumentParser, args: argparse.Namespace):
    try:
        if args.command == "upsert":
            return commands.UpsertOptions(
                externalid=args.externalid,
                csvfile=args.csvfile,
                sobjecttype=args.sobjecttype,
                assignmentruleid=args.assignmentruleid,
                wait=args.wait,
            )
        return commands.StatusOptions(jobid=args.jobid, showrecords=args.showrecords)
    except ValueError as e:
        parser.error(str(e))


def main(argv=None, connect=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    options = parse_options(parser, args)

    ctx = CommandContext(connect=connect or default_connect, json_output=args.json)

    try:
        configure_logging()
        if args.command == "upsert":
            result = commands.upsert(options, ctx)
        else:
            result = commands.status(options, ctx)

        if args.json:
            print(json.dumps(result, indent=2))
        return 0

    except KeyboardInterrupt:
        print("\n\n⚠️  Interrupted by user", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"\n❌ Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
