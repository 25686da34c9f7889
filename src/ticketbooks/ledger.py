"""Turn event summaries into the ledger lines to book in Exact Online."""

import asyncio
import re
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

import structlog

from ticketbooks.clients.exact import ExactClient
from ticketbooks.clients.odata import Guid
from ticketbooks.config.run_config import EventConfig
from ticketbooks.models import CostCenterCode, EventId, GLAccountCode
from ticketbooks.orchestrator import EventSummary

logger = structlog.get_logger(__name__)


class ClassificationError(Exception):
    """An event could not be mapped onto ledger lines."""


class MissingEventConfigError(ClassificationError):
    def __init__(self, event_id: EventId, event_name: str):
        super().__init__(f"No configuration for event {event_id} ({event_name})")
        self.event_id = event_id


class MissingVatCodeError(ClassificationError):
    def __init__(self, event_id: EventId):
        super().__init__(
            f"Event {event_id} is not split per product but has no vat_code configured"
        )
        self.event_id = event_id


class UnmatchedProductError(ClassificationError):
    def __init__(self, event_id: EventId, product: str):
        super().__init__(
            f"Product {product!r} of event {event_id} matches no cost center pattern"
        )
        self.event_id = event_id
        self.product = product


class UnmatchedVatRateError(ClassificationError):
    def __init__(self, event_id: EventId, product: str, rate: Decimal | None):
        super().__init__(
            f"No VAT code configured for rate {rate} of product {product!r} "
            f"in event {event_id}"
        )
        self.event_id = event_id
        self.product = product
        self.rate = rate


@dataclass(frozen=True)
class LedgerLine:
    """One line to add to the sales entry."""

    gl_account: Guid
    cost_center: Guid | None
    vat_code: str | None
    description: str
    amount: Decimal


class LedgerClassifier:
    """Decides GL account, cost center and VAT code for each booked amount.

    Usage:
        classifier = LedgerClassifier(exact, config.exact.gl_accounts.bookkeeping,
                                      config.exact.vat_codes)
        lines = await classifier.classify_all(summaries, config.pretix.event_specific)
    """

    def __init__(
        self,
        exact: ExactClient,
        bookkeeping_gl_account: GLAccountCode,
        vat_codes: Mapping[str, float],
        fee_cost_center: CostCenterCode | None = None,
    ):
        self._exact = exact
        self._bookkeeping_gl_account = bookkeeping_gl_account
        # Percentages come from JSON as floats; compare them as decimals
        self._vat_codes = {
            code: Decimal(str(percentage)) for code, percentage in vat_codes.items()
        }
        self._fee_cost_center = fee_cost_center

    def vat_code_for_rate(self, rate: Decimal) -> str | None:
        """First configured VAT code whose percentage equals `rate`."""
        for code, percentage in self._vat_codes.items():
            if percentage == rate:
                return code
        return None

    async def _fee_line(self, summary: EventSummary) -> LedgerLine:
        gl_account, cost_center = await asyncio.gather(
            self._exact.get_gl_account_by_code(self._bookkeeping_gl_account),
            self._resolve_cost_center(self._fee_cost_center),
        )
        return LedgerLine(
            gl_account=gl_account,
            cost_center=cost_center,
            vat_code=None,
            description=f"Transaction fees {summary.event_name}",
            amount=summary.totals.fees,
        )

    async def _resolve_cost_center(self, code: CostCenterCode | None) -> Guid | None:
        if code is None:
            return None
        return await self._exact.get_cost_center_by_code(code)

    async def classify(
        self, event_id: EventId, summary: EventSummary, config: EventConfig
    ) -> list[LedgerLine]:
        """Ledger lines for one event: its sales, then its fees."""
        log = logger.bind(event_id=event_id, split=config.split_per_product)

        if not config.split_per_product:
            if config.vat_code is None:
                raise MissingVatCodeError(event_id)
            gl_account, fee_line = await asyncio.gather(
                self._exact.get_gl_account_by_code(config.gl_account),
                self._fee_line(summary),
            )
            log.debug("event_classified", lines=2)
            return [
                LedgerLine(
                    gl_account=gl_account,
                    cost_center=None,
                    vat_code=config.vat_code,
                    description=summary.event_name,
                    amount=summary.totals.value,
                ),
                fee_line,
            ]

        ignore = [re.compile(pattern) for pattern in config.ignore_patterns]
        cost_center_patterns = [
            (re.compile(pattern), code)
            for pattern, code in config.cost_centers_per_product.items()
        ]

        # Every product is matched before the first Exact lookup
        matched: list[tuple[str, Decimal, CostCenterCode, str]] = []
        for product, amount in summary.items.items():
            if amount == 0:
                continue
            if any(pattern.search(product) for pattern in ignore):
                log.debug("product_ignored", product=product)
                continue

            cost_center_code = next(
                (code for pattern, code in cost_center_patterns if pattern.search(product)),
                None,
            )
            if cost_center_code is None:
                raise UnmatchedProductError(event_id, product)

            sale_item = summary.sale_item(product)
            rate = sale_item.tax_rate if sale_item else None
            vat_code = self.vat_code_for_rate(rate) if rate is not None else None
            if vat_code is None:
                raise UnmatchedVatRateError(event_id, product, rate)

            matched.append((product, amount, cost_center_code, vat_code))

        codes = list(dict.fromkeys(code for _, _, code, _ in matched))
        gl_account, fee_line, *cost_center_ids = await asyncio.gather(
            self._exact.get_gl_account_by_code(config.gl_account),
            self._fee_line(summary),
            *(self._exact.get_cost_center_by_code(code) for code in codes),
        )
        cost_centers = dict(zip(codes, cost_center_ids))

        lines = [
            LedgerLine(
                gl_account=gl_account,
                cost_center=cost_centers[code],
                vat_code=vat_code,
                description=product,
                amount=amount,
            )
            for product, amount, code, vat_code in matched
        ]
        lines.append(fee_line)

        log.debug("event_classified", lines=len(lines))
        return lines

    async def classify_all(
        self,
        summaries: Mapping[EventId, EventSummary],
        configs: Mapping[EventId, EventConfig],
    ) -> dict[EventId, list[LedgerLine]]:
        """Ledger lines for every summarized event.

        Raises:
            MissingEventConfigError: If an event has no configuration.
        """
        for event_id, summary in summaries.items():
            if event_id not in configs:
                raise MissingEventConfigError(event_id, summary.event_name)

        event_ids = list(summaries)
        results = await asyncio.gather(
            *(
                self.classify(event_id, summaries[event_id], configs[event_id])
                for event_id in event_ids
            )
        )
        return dict(zip(event_ids, results))
