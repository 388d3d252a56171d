#!/usr/bin/env python3
"""
Send a test error report to Bugsnag.

Use this to check that an API key and notify endpoint are working.

Usage:
    python scripts/send_test_report.py --api-key YOUR_KEY
    python scripts/send_test_report.py --dry-run
"""

import argparse
import sys

import httpx
import orjson

from snagnotify.client.transport import Transport, serialize_report
from snagnotify.errors import ConfigurationError, StructuredError
from snagnotify.log import configure_logging
from snagnotify.report.builder import ReportBuilder


def main():
    parser = argparse.ArgumentParser(description="Send a test report to Bugsnag")
    parser.add_argument(
        "--api-key",
        default=None,
        help="Bugsnag API key (defaults to BUGSNAG_KEY)",
    )
    parser.add_argument(
        "--url",
        default=None,
        help="Notify endpoint (defaults to SNAGNOTIFY_NOTIFY_URL)",
    )
    parser.add_argument(
        "--environment",
        default="development",
        help="Release stage to report",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print the payload instead of sending it",
    )
    parser.add_argument("--log-level", default=None, help="Log level")

    args = parser.parse_args()
    configure_logging(args.log_level)

    try:
        raise StructuredError("snagnotify test report", {"source": "send_test_report"})
    except StructuredError as e:
        exception = e

    options = {
        "api_key": args.api_key,
        "environment": args.environment,
        "context": "scripts/send_test_report",
        "severity": "info",
    }

    try:
        report = ReportBuilder().build(exception, options)
    except ConfigurationError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    if args.dry_run:
        print(orjson.dumps(orjson.loads(serialize_report(report)), option=orjson.OPT_INDENT_2).decode())
        return

    transport = Transport(url=args.url)
    print(f"Sending test report to {transport.url}")

    try:
        response = transport.send(report)
    except httpx.HTTPError as e:
        print(f"ERROR: Failed to reach Bugsnag: {e}")
        sys.exit(1)

    if response.is_success:
        print(f"✓ Report accepted ({response.status_code})")
    else:
        print(f"✗ Report rejected ({response.status_code}): {response.text[:200]}")
        sys.exit(1)


if __name__ == "__main__":
    main()
