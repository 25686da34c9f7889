"""Command-line entry point.

Usage:
    # Authorize only (binding port 443 may need elevated privileges)
    ticketbooks -c config.json --only-auth

    # Last week's pretix sales into sales entry 42, in CET
    ticketbooks -c config.json weekly -t 42 -u 1

    # Two weeks ago, with the offset taken from the system clock
    ticketbooks -c config.json weekly -t 42 -p 2 -u $(date +"%z" | cut -c 2-3)
"""

import argparse
import asyncio
import sys
from pathlib import Path

import structlog

from ticketbooks import __version__
from ticketbooks.auth import ensure_authentication
from ticketbooks.clients.exact import ExactClient
from ticketbooks.clients.pretix import PretixClient
from ticketbooks.config import RunConfig, configure_logging
from ticketbooks.weekly import ExternalClients, WeeklyCloseArgs, run_weekly_close

logger = structlog.get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ticketbooks",
        description="Reconcile pretix ticket sales with Exact Online",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        required=True,
        help="Path to the JSON configuration file",
    )
    parser.add_argument(
        "--only-auth",
        action="store_true",
        help="Only perform the OAuth2 authorizations, then stop",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Only print the actions that would be performed",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    modes = parser.add_subparsers(dest="mode")
    weekly = modes.add_parser(
        "weekly",
        help="Add last week's pretix sales to the imported sales entry",
    )
    weekly.add_argument(
        "-t",
        "--transaction-id",
        type=int,
        required=True,
        help="Entry number of the sales entry created by the import",
    )
    weekly.add_argument(
        "-p",
        "--periods-ago",
        type=int,
        default=1,
        help="Weeks back to process; 1 is the most recent finished week (default: 1)",
    )
    weekly.add_argument(
        "-u",
        "--utc-offset-hours",
        type=int,
        required=True,
        help="Local offset from UTC in hours, e.g. 1 in winter and 2 in summer for NL",
    )
    weekly.add_argument(
        "--report-dir",
        type=Path,
        default=None,
        help="Directory to write each event's PDF report to",
    )
    return parser


async def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.mode == "weekly" and args.periods_ago < 1:
        parser.error(
            "--periods-ago must be at least 1; 0 would be the current week, "
            "which has not ended yet"
        )

    config = RunConfig.read(args.config)
    configure_logging(level=config.log_level, targets=config.log_targets)
    logger.info("starting_ticketbooks", version=__version__)

    await ensure_authentication(config)
    config.write(args.config)

    if args.only_auth:
        logger.info("only_auth_set_stopping")
        return

    if args.mode is None:
        logger.info("no_mode_selected")
        return

    # Both were stored by ensure_authentication
    pretix_tokens = config.credentials_for("pretix")
    exact_tokens = config.credentials_for("exact")
    assert pretix_tokens is not None and exact_tokens is not None

    async with (
        PretixClient(pretix_tokens.access_token, config.pretix.url) as pretix,
        ExactClient(exact_tokens.access_token) as exact,
    ):
        # Set once, before anything runs concurrently
        exact.set_division(await exact.accounting_division())
        clients = ExternalClients(exact=exact, pretix=pretix)

        if args.mode == "weekly":
            await run_weekly_close(
                WeeklyCloseArgs(
                    transaction_id=args.transaction_id,
                    periods_ago=args.periods_ago,
                    utc_offset_hours=args.utc_offset_hours,
                    report_dir=args.report_dir,
                ),
                config,
                clients,
                dry_run=args.dry_run,
            )


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("interrupted")
    except Exception as e:
        logger.exception("run_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    run()
