"""Shared plumbing for the bearer-token API clients."""

from typing import Any

import httpx
import structlog

from ticketbooks.config import get_settings

logger = structlog.get_logger(__name__)


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(self, message: str, status_code: int | None = None, details: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


class AuthenticationError(APIError):
    """The access token was rejected (HTTP 401)."""

    pass


class BearerAPIClient:
    """Async JSON client authenticating with an OAuth2 bearer token.

    One instance is shared by every concurrent task of a run; the
    underlying httpx client is created on first use.
    """

    def __init__(self, access_token: str, base_url: str):
        settings = get_settings()
        self.base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._timeout = settings.http_timeout
        self._user_agent = settings.user_agent

        self._client: httpx.AsyncClient | None = None

    def url(self, path: str) -> str:
        """Absolute URL for an API path."""
        return f"{self.base_url}{path}"

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self._get_headers(),
                timeout=httpx.Timeout(self._timeout),
            )
        return self._client

    def _get_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._access_token}",
            "Accept": "application/json",
            "User-Agent": self._user_agent,
        }

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "BearerAPIClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def fetch(
        self, method: str, url: str, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        """Send a request and return the response without checking its status."""
        client = await self._get_client()
        try:
            return await client.request(method=method, url=url, json=json)
        except httpx.RequestError as e:
            raise APIError(f"Request failed: {e}") from e

    async def _request(
        self, method: str, url: str, json: dict[str, Any] | None = None
    ) -> Any:
        """Make an authenticated request and decode the JSON body."""
        response = await self.fetch(method, url, json=json)

        if response.status_code == 401:
            raise AuthenticationError("Access token rejected", status_code=401)

        if response.status_code >= 400:
            try:
                error_detail = response.json() if response.content else {}
            except ValueError:
                error_detail = {
                    "raw": response.text[:500] if response.text else "empty response"
                }
            logger.debug(
                "api_error",
                method=method,
                url=url,
                status_code=response.status_code,
            )
            raise APIError(
                f"API error: {response.status_code}",
                status_code=response.status_code,
                details=error_detail,
            )

        return response.json() if response.content else {}

    async def get(self, url: str) -> Any:
        """Make GET request."""
        return await self._request("GET", url)

    async def post(self, url: str, json: dict[str, Any] | None = None) -> Any:
        """Make POST request."""
        return await self._request("POST", url, json=json)
