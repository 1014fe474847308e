# investigator/cli/investigate.py
"""
CLI for investigating one deprovisioned account.

Usage:
    python -m investigator.cli.investigate
    python -m investigator.cli.investigate jdoe
    python -m investigator.cli.investigate jdoe --output-dir ./reports
"""

import argparse
import asyncio
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

from investigator.adapters.factory import build_adapters
from investigator.config import get_settings
from investigator.errors import InputError
from investigator.logging_config import configure_logging, start_investigation_context
from investigator.models import normalize_alias
from investigator.reporting import print_summary, write_report
from investigator.services.collector import EvidenceCollector
from investigator.services.recommendation import recommend

load_dotenv()

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def prompt_alias() -> str:
    """Ask the operator for an alias."""
    try:
        return input("Enter the user alias to investigate: ")
    except EOFError:
        return ""


async def run_investigation(alias: str, output_dir: str) -> Path | None:
    """
    Collect evidence, decide, and write the report.

    Returns:
        Path of the report, or None when it could not be written. The console
        summary is printed either way.
    """
    settings = get_settings()
    adapters = build_adapters(settings)
    try:
        collector = EvidenceCollector(
            directory=adapters.directory,
            mailbox=adapters.mailbox,
            storage=adapters.storage,
            user_domain=settings.USER_DOMAIN,
            timeout_seconds=settings.ADAPTER_TIMEOUT_SECONDS,
        )
        investigation = await collector.collect(alias)
    finally:
        await adapters.close()

    recommendation = recommend(investigation)
    try:
        report_path = write_report(investigation, recommendation, output_dir, generated_at=datetime.now(UTC))
    except OSError as e:
        logger.error(f"Failed to write report to {output_dir}: {e}", extra={"event": "report_failed", "alias": alias})
        print_summary(investigation, recommendation)
        print(f"Error: could not write report to {output_dir}: {e}", file=sys.stderr)
        return None

    print_summary(investigation, recommendation, report_path)
    return report_path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Investigate a deprovisioned account across directory, mailbox and storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Prompt for the alias
  python -m investigator.cli.investigate

  # Investigate jdoe and write the report to ./reports
  python -m investigator.cli.investigate jdoe --output-dir ./reports
        """,
    )
    parser.add_argument("alias", nargs="?", help="User alias (prompted for when omitted)")
    parser.add_argument("--output-dir", default=None, help="Report directory (default: REPORT_DIR setting)")
    args = parser.parse_args(argv)

    raw_alias = args.alias if args.alias is not None else prompt_alias()
    try:
        alias = normalize_alias(raw_alias)
    except InputError as e:
        print(f"Error: {e}", file=sys.stderr)
        parser.print_usage(sys.stderr)
        return EXIT_USAGE

    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Error: incomplete configuration, check the environment or .env file\n{e}", file=sys.stderr)
        return EXIT_FAILURE
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)

    start_investigation_context()
    logger.info(f"Investigating {alias}", extra={"event": "investigation_start", "alias": alias})

    report_path = asyncio.run(run_investigation(alias, args.output_dir or settings.REPORT_DIR))
    return EXIT_OK if report_path is not None else EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
