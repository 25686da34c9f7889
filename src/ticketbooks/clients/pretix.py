"""pretix REST API client."""

from typing import Any

import httpx
import structlog

from ticketbooks.clients.base import APIError, BearerAPIClient
from ticketbooks.models import Event, EventId, Organizer, OrganizerId

logger = structlog.get_logger(__name__)


class PretixClient(BearerAPIClient):
    """Async client for a pretix instance.

    Usage:
        async with PretixClient(token, "https://pretix.example.org") as pretix:
            organizers = await pretix.list_organizers()
    """

    async def list_paginated(self, path_or_url: str) -> list[dict[str, Any]]:
        """Fetch every page of a list endpoint, e.g. `/api/v1/organizers`.

        pretix pages look like `{"results": [...], "next": url | null}`;
        `next` is followed until it is null.
        """
        url = path_or_url if path_or_url.startswith("http") else self.url(path_or_url)
        results: list[dict[str, Any]] = []
        pages = 0

        next_url: str | None = url
        while next_url:
            page = await self.get(next_url)
            if not isinstance(page, dict) or not isinstance(page.get("results"), list):
                raise APIError("Invalid list response format", details=page)
            results.extend(page["results"])
            next_url = page.get("next")
            pages += 1

        logger.debug("listed_paginated", url=url, pages=pages, count=len(results))
        return results

    async def list_organizers(self) -> list[Organizer]:
        """List all organizers the token has access to."""
        rows = await self.list_paginated("/api/v1/organizers/")
        return [Organizer.model_validate(row) for row in rows]

    async def list_events(self, organizer: OrganizerId) -> list[Event]:
        """List all events of an organizer."""
        rows = await self.list_paginated(f"/api/v1/organizers/{organizer}/events/")
        return [Event.model_validate(row) for row in rows]

    async def list_exporters(
        self, organizer: OrganizerId, event: EventId
    ) -> list[dict[str, Any]]:
        """List the data exporters available for an event."""
        return await self.list_paginated(
            f"/api/v1/organizers/{organizer}/events/{event}/exporters/"
        )

    async def poll(self, url: str) -> httpx.Response:
        """GET an export download URL. The status code is left to the caller."""
        return await self.fetch("GET", url)
