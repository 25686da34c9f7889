"""Fan-out over every live pretix event, producing one summary per event.

Organizers, the events of each organizer, and the two exports of each
event all run concurrently. The first failure fails the whole run;
siblings that are still in flight are left to finish and discarded.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal

import structlog

from ticketbooks.aggregation import (
    OrderExportTotals,
    calc_totals,
    calc_totals_per_sale_item,
    name_totals,
    orders_in_period,
)
from ticketbooks.clients.pretix import PretixClient
from ticketbooks.exports import DataExporter
from ticketbooks.models import Event, EventId, Organizer, SaleItem
from ticketbooks.periods import export_period

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class EventSummary:
    """Financial summary of one event over one period."""

    event_name: str
    totals: OrderExportTotals
    # Sale item name -> summed position prices
    items: dict[str, Decimal] = field(default_factory=dict)
    sale_items: list[SaleItem] = field(default_factory=list)
    pdf: bytes = b""

    def sale_item(self, name: str) -> SaleItem | None:
        """The catalog entry for a product name."""
        for item in self.sale_items:
            if item.name == name:
                return item
        return None


async def summarize_event(
    exporter: DataExporter,
    organizer: Organizer,
    event: Event,
    period_start: datetime,
    period_end: datetime,
) -> EventSummary:
    """Export one event and total its orders within the period."""
    log = logger.bind(organizer=organizer.slug, event_id=event.slug)
    log.debug("summarizing_event")

    data_export, pdf = await asyncio.gather(
        exporter.export_order_data(organizer.slug, event.slug),
        exporter.export_order_data_pdf(
            organizer.slug, event.slug, period_start, period_end
        ),
    )

    orders = orders_in_period(data_export.orders, period_start, period_end)
    totals = calc_totals(orders)
    items = name_totals(calc_totals_per_sale_item(orders), data_export.items)

    log.info(
        "event_summarized",
        orders=len(orders),
        value=str(totals.value),
        fees=str(totals.fees),
    )

    return EventSummary(
        event_name=event.display_name("en"),
        totals=totals,
        items=items,
        sale_items=data_export.items,
        pdf=pdf,
    )


async def _summarize_organizer(
    pretix: PretixClient,
    exporter: DataExporter,
    organizer: Organizer,
    period_start: datetime,
    period_end: datetime,
) -> list[tuple[EventId, EventSummary]]:
    # Closed events have nothing left to book
    events = [event for event in await pretix.list_events(organizer.slug) if event.live]
    logger.info("organizer_events", organizer=organizer.slug, live_events=len(events))

    summaries = await asyncio.gather(
        *(
            summarize_event(exporter, organizer, event, period_start, period_end)
            for event in events
        )
    )
    return [(event.slug, summary) for event, summary in zip(events, summaries)]


async def collect_event_summaries(
    pretix: PretixClient,
    exporter: DataExporter,
    monday: datetime,
    offset: timezone,
) -> dict[EventId, EventSummary]:
    """Summarize every live event of every accessible organizer.

    Args:
        pretix: Client for the pretix instance.
        exporter: Export driver using the same client.
        monday: Start of the period, see `periods.period_start`.
        offset: Local UTC offset the period is aligned to.

    Returns:
        Mapping of event slug to summary. Slugs are assumed to be unique
        across organizers; a duplicate overwrites the earlier one.
    """
    period_start, period_end = export_period(monday, offset)
    logger.info(
        "export_period",
        start=period_start.isoformat(),
        end=period_end.isoformat(),
    )

    organizers = await pretix.list_organizers()
    per_organizer = await asyncio.gather(
        *(
            _summarize_organizer(pretix, exporter, organizer, period_start, period_end)
            for organizer in organizers
        )
    )

    results: dict[EventId, EventSummary] = {}
    for pairs in per_organizer:
        results.update(pairs)
    return results
