"""Driver for pretix's asynchronous data exporters.

Running an exporter returns a download URL. Polling that URL answers
409 while the job runs, 200 with the result once it is done, and 410
with a message if it failed:

    REQUESTED -> PENDING -> READY
                         -> FAILED
                         -> UNKNOWN_ERROR
"""

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx
import structlog
from pydantic import ValidationError

from ticketbooks.clients.base import APIError
from ticketbooks.clients.pretix import PretixClient
from ticketbooks.config import get_settings
from ticketbooks.models import EventId, OrderExport, OrganizerId

logger = structlog.get_logger(__name__)


class Exporter(str, Enum):
    """Exporter identifiers used by the weekly close."""

    ORDER_DATA = "json"
    PDF_REPORT = "pdfreport"


class ExportState(str, Enum):
    REQUESTED = "requested"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"
    UNKNOWN_ERROR = "unknown_error"


class ExportError(Exception):
    """Base exception for export jobs."""


class ExportFailedError(ExportError):
    """pretix reported the export as failed (HTTP 410)."""

    def __init__(self, reason: str):
        super().__init__(f"Export failed: {reason}")
        self.reason = reason


class UnknownExportStatusError(ExportError):
    """The download URL answered with a status the protocol does not define."""

    def __init__(self, status_code: int):
        super().__init__(f"Export failed for unknown reason: HTTP {status_code}")
        self.status_code = status_code


class ExportTimeoutError(ExportError):
    """The export did not finish within `max_wait` seconds."""

    def __init__(self, download_url: str, waited: float):
        super().__init__(f"Export {download_url} not ready after {waited:.1f}s")
        self.download_url = download_url
        self.waited = waited


@dataclass
class ExportJob:
    """Handle for one running export. Never shared between invocations."""

    download_url: str
    state: ExportState = ExportState.REQUESTED
    history: list[ExportState] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.history.append(self.state)

    def transition(self, state: ExportState) -> None:
        self.state = state
        self.history.append(state)
        logger.debug("export_state", url=self.download_url, state=state.value)


class DataExporter:
    """Runs pretix exporters and waits for their results."""

    def __init__(
        self,
        client: PretixClient,
        poll_interval: float | None = None,
        max_wait: float | None = None,
    ):
        settings = get_settings()
        self._client = client
        self.poll_interval = (
            poll_interval if poll_interval is not None else settings.export_poll_interval
        )
        self.max_wait = max_wait if max_wait is not None else settings.export_max_wait

    async def run_exporter(
        self,
        organizer: OrganizerId,
        event: EventId,
        exporter: Exporter | str,
        parameters: dict[str, Any] | None = None,
    ) -> ExportJob:
        """Start an exporter and return a handle to its download URL."""
        identifier = exporter.value if isinstance(exporter, Exporter) else exporter
        logger.debug(
            "running_exporter",
            organizer=organizer,
            event_id=event,
            exporter=identifier,
        )

        body = await self._client.post(
            self._client.url(
                f"/api/v1/organizers/{organizer}/events/{event}"
                f"/exporters/{identifier}/run/"
            ),
            json=parameters,
        )
        if not isinstance(body, dict) or "download" not in body:
            raise APIError("Invalid exporter run response format", details=body)

        job = ExportJob(download_url=body["download"])
        job.transition(ExportState.PENDING)
        return job

    async def wait_for_export(self, job: ExportJob) -> httpx.Response:
        """Poll the job until it reaches a terminal state.

        Returns:
            The response carrying the export result.

        Raises:
            ExportFailedError: pretix reported the export failed.
            UnknownExportStatusError: Unexpected HTTP status.
            ExportTimeoutError: `max_wait` was set and exceeded.
        """
        start = time.monotonic()

        while True:
            response = await self._client.poll(job.download_url)
            elapsed = time.monotonic() - start
            status = response.status_code

            if status == httpx.codes.CONFLICT:
                # Still running
                if self.max_wait is not None and elapsed >= self.max_wait:
                    raise ExportTimeoutError(job.download_url, elapsed)
                job.transition(ExportState.PENDING)
                await asyncio.sleep(self.poll_interval)
            elif status == httpx.codes.OK:
                job.transition(ExportState.READY)
                logger.debug(
                    "export_complete", url=job.download_url, took=round(elapsed, 2)
                )
                return response
            elif status == httpx.codes.GONE:
                job.transition(ExportState.FAILED)
                reason = self._failure_reason(response)
                logger.error("export_failed", url=job.download_url, reason=reason)
                raise ExportFailedError(reason)
            else:
                job.transition(ExportState.UNKNOWN_ERROR)
                raise UnknownExportStatusError(status)

    @staticmethod
    def _failure_reason(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict) and "message" in body:
            return str(body["message"])
        return str(body)

    async def export_order_data(
        self, organizer: OrganizerId, event: EventId
    ) -> OrderExport:
        """All orders and sale items of an event, via the `json` exporter."""
        job = await self.run_exporter(organizer, event, Exporter.ORDER_DATA)
        response = await self.wait_for_export(job)

        payload = response.json()
        try:
            return OrderExport.model_validate(payload["event"])
        except (KeyError, TypeError) as e:
            raise APIError("Invalid order data export format") from e
        except ValidationError:
            logger.error("order_data_invalid", organizer=organizer, event_id=event)
            raise

    async def export_order_data_pdf(
        self,
        organizer: OrganizerId,
        event: EventId,
        date_from: datetime,
        date_until: datetime,
    ) -> bytes:
        """PDF order report of an event for the given payment-date range."""
        job = await self.run_exporter(
            organizer,
            event,
            Exporter.PDF_REPORT,
            {
                "date_axis": "last_payment_date",
                "date_from": date_from.strftime("%Y-%m-%d"),
                "date_until": date_until.strftime("%Y-%m-%d"),
            },
        )
        response = await self.wait_for_export(job)
        return response.content
