"""The weekly close: pretix sales of last week into the Exact sales entry.

The sales entry is created beforehand by importing the payment provider's
export into Exact. This mode computes the pretix totals for the same week
and the ledger lines they should add to that entry.
"""

from dataclasses import dataclass
from pathlib import Path

import structlog

from ticketbooks.clients.exact import ExactClient
from ticketbooks.clients.pretix import PretixClient
from ticketbooks.config.run_config import RunConfig
from ticketbooks.exports import DataExporter
from ticketbooks.ledger import LedgerClassifier, LedgerLine
from ticketbooks.models import EventId
from ticketbooks.orchestrator import EventSummary, collect_event_summaries
from ticketbooks.periods import period_start, utc_offset

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class WeeklyCloseArgs:
    # Entry number of the sales entry created by the import
    transaction_id: int
    # 1 is the most recently finished week
    periods_ago: int
    utc_offset_hours: int
    report_dir: Path | None = None


@dataclass
class ExternalClients:
    exact: ExactClient
    pretix: PretixClient


def _write_reports(summaries: dict[EventId, EventSummary], report_dir: Path) -> None:
    report_dir.mkdir(parents=True, exist_ok=True)
    for event_id, summary in summaries.items():
        path = report_dir / f"{event_id}.pdf"
        path.write_bytes(summary.pdf)
        logger.info("report_written", event_id=event_id, path=str(path))


async def run_weekly_close(
    args: WeeklyCloseArgs,
    config: RunConfig,
    clients: ExternalClients,
    dry_run: bool = True,
) -> dict[EventId, list[LedgerLine]]:
    """Compute the ledger lines of every live event for the requested week.

    Raises:
        InvalidPeriodError: If `periods_ago` is 0. Checked before any request.
    """
    offset = utc_offset(args.utc_offset_hours)
    monday = period_start(offset, args.periods_ago)

    # The sales entry must exist before any pretix export is started
    logger.info("fetching_sales_entry", transaction_id=args.transaction_id)
    sales_entry = await clients.exact.get_sales_entry_for_entry_number(args.transaction_id)
    sales_entry_lines = await clients.exact.get_sales_entry_lines(sales_entry)
    logger.info(
        "sales_entry_fetched",
        entry_id=str(sales_entry),
        lines=len(sales_entry_lines),
    )

    logger.info("running_pretix_exports")
    exporter = DataExporter(clients.pretix)
    summaries = await collect_event_summaries(clients.pretix, exporter, monday, offset)
    logger.info("pretix_exports_complete", events=len(summaries))

    for event_id, summary in summaries.items():
        logger.info(
            "event_totals",
            event_id=event_id,
            name=summary.event_name,
            value=str(summary.totals.value),
            fees=str(summary.totals.fees),
        )

    classifier = LedgerClassifier(
        clients.exact,
        config.exact.gl_accounts.bookkeeping,
        config.exact.vat_codes,
        config.exact.fee_cost_center,
    )
    ledger_lines = await classifier.classify_all(summaries, config.pretix.event_specific)

    for event_id, lines in ledger_lines.items():
        for line in lines:
            logger.info(
                "ledger_line",
                event_id=event_id,
                description=line.description,
                amount=str(line.amount),
                gl_account=str(line.gl_account),
                cost_center=str(line.cost_center) if line.cost_center else None,
                vat_code=line.vat_code,
            )

    if args.report_dir is not None:
        _write_reports(summaries, args.report_dir)

    # TODO: add the lines to the sales entry once the SalesEntryLines POST is wired up
    logger.warning(
        "ledger_write_not_implemented",
        entry_id=str(sales_entry),
        dry_run=dry_run,
    )
    return ledger_lines
