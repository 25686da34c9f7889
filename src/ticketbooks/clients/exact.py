"""Exact Online REST API client.

Nearly every Exact endpoint lives under an accounting division, e.g.
`/api/v1/55861/salesentry/SalesEntries`. The division of the logged-in
user is looked up once with `accounting_division()` and set with
`set_division()` before any divisioned call is made.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

import structlog

from ticketbooks.clients.base import APIError, BearerAPIClient
from ticketbooks.clients.odata import Filter, FilterOp, Guid
from ticketbooks.models import CostCenterCode, GLAccountCode

logger = structlog.get_logger(__name__)

EXACT_URL = "https://start.exactonline.nl"


class NoDivisionError(Exception):
    """A divisioned endpoint was called before the division was set."""

    def __init__(self) -> None:
        super().__init__("No accounting division was set")


@dataclass(frozen=True)
class SalesEntryLine:
    """A line of a sales entry. `amount` excludes VAT."""

    id: Guid
    amount: Decimal
    vat_code: str
    vat_percentage: Decimal
    cost_center: str | None
    description: str

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> "SalesEntryLine":
        return cls(
            id=Guid(row["ID"]),
            amount=Decimal(str(row["AmountFC"])),
            vat_code=row["VATCode"],
            vat_percentage=Decimal(str(row["VATPercentage"])),
            cost_center=row.get("CostCenter"),
            description=row.get("Description") or "",
        )


class ExactClient(BearerAPIClient):
    """Async client for Exact Online."""

    def __init__(self, access_token: str):
        super().__init__(access_token, EXACT_URL)
        self._division: int | None = None

    @property
    def division(self) -> int | None:
        return self._division

    def set_division(self, division: int) -> None:
        """Set the accounting division used by `divisioned_url`."""
        self._division = division
        logger.info("division_set", division=division)

    def divisioned_url(self, path: str) -> str:
        """URL within the division namespace.

        For `/api/v1/{division}/salesentry/SalesEntries`, pass
        `/salesentry/SalesEntries`.

        Raises:
            NoDivisionError: If no division has been set.
        """
        if self._division is None:
            raise NoDivisionError()
        url = self.url(f"/api/v1/{self._division}{path}")
        logger.debug("divisioned_url", url=url)
        return url

    @staticmethod
    def _extract_results(payload: Any) -> list[dict[str, Any]]:
        """Unwrap `{"d": {"results": [...]}}`."""
        try:
            results = payload["d"]["results"]
        except (KeyError, TypeError) as e:
            raise APIError("Invalid OData response format", details=payload) from e
        if not isinstance(results, list):
            raise APIError("Invalid OData response format", details=payload)
        return results

    async def _get_values(self, url: str) -> list[dict[str, Any]]:
        return self._extract_results(await self.get(url))

    async def _get_value(self, url: str) -> dict[str, Any]:
        """First result of a lookup that is expected to match."""
        results = await self._get_values(url)
        if not results:
            raise APIError(f"No results for {url}", status_code=None)
        return results[0]

    # === Current user ===

    async def accounting_division(self) -> int:
        """The current division of the logged-in user."""
        row = await self._get_value(
            self.url("/api/v1/current/Me?$select=AccountingDivision")
        )
        return int(row["AccountingDivision"])

    # === Master data ===

    async def get_cost_center_by_code(self, code: CostCenterCode) -> Guid:
        """ID of the cost center ('kostenplaats') with the given code."""
        query = Filter("Code", FilterOp.EQUALS, code).finalize()
        row = await self._get_value(
            self.divisioned_url(f"/hrm/Costcenters?$filter={query}&$select=ID")
        )
        return Guid(row["ID"])

    async def get_gl_account_by_code(self, code: GLAccountCode) -> Guid:
        """ID of the GL account ('grootboekrekening') with the given code."""
        query = Filter("Code", FilterOp.EQUALS, code).finalize()
        row = await self._get_value(
            self.divisioned_url(f"/financial/GLAccounts?$filter={query}&$select=ID")
        )
        return Guid(row["ID"])

    # === Sales entries ===

    async def get_sales_entry_for_entry_number(self, number: int) -> Guid:
        """Entry ID of the sales entry with the given entry number."""
        query = Filter("EntryNumber", FilterOp.EQUALS, number).finalize()
        row = await self._get_value(
            self.divisioned_url(
                f"/salesentry/SalesEntries?$filter={query}&$select=EntryID"
            )
        )
        return Guid(row["EntryID"])

    async def get_sales_entry_lines(self, entry_id: Guid) -> list[SalesEntryLine]:
        """All lines of a sales entry."""
        query = Filter("EntryID", FilterOp.EQUALS, entry_id).finalize()
        rows = await self._get_values(
            self.divisioned_url(
                "/salesentry/SalesEntryLines"
                "?$select=ID,AmountFC,VATCode,VATPercentage,CostCenter,Description"
                f"&$filter={query}"
            )
        )
        return [SalesEntryLine.from_api(row) for row in rows]
