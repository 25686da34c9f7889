"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from ticketbooks.config.settings import get_settings

CET = timezone(timedelta(hours=1))


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Start every test from default settings."""
    for name in (
        "LOG_LEVEL",
        "LOG_FORMAT",
        "HTTP_TIMEOUT",
        "EXPORT_POLL_INTERVAL",
        "EXPORT_MAX_WAIT",
        "CALLBACK_HOST",
        "CALLBACK_PORT",
        "USER_AGENT",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mock httpx responses."""

    def _make(
        status_code: int = 200,
        json_data: Any = None,
        content: bytes | None = None,
        text: str = "",
    ) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.json.return_value = json_data
        if content is None:
            content = b"content" if json_data is not None else b""
        response.content = content
        response.text = text
        return response

    return _make


@pytest.fixture
def mock_http():
    """Mock httpx AsyncClient, to be returned from a patched `_get_client`."""
    client = AsyncMock()
    client.request = AsyncMock()
    client.aclose = AsyncMock()
    return client


@pytest.fixture
def monday() -> datetime:
    """Monday 8 January 2024, midnight CET."""
    return datetime(2024, 1, 8, tzinfo=CET)


@pytest.fixture
def order_export_payload() -> dict[str, Any]:
    """Body of a finished `json` export with two orders in the week of 8 January."""
    return {
        "event": {
            "orders": [
                {
                    "code": "ABC12",
                    "datetime": "2024-01-08T00:00:00+01:00",
                    "total": "25.50",
                    "fees": [{"value": "0.50"}],
                    "positions": [
                        {"item": 1, "price": "10.00"},
                        {"item": 2, "price": "15.00"},
                    ],
                },
                {
                    "code": "DEF34",
                    "datetime": "2024-01-10T14:30:00+01:00",
                    "total": "10.35",
                    "fees": [{"value": "0.35"}],
                    "positions": [{"item": 1, "price": "10.00"}],
                },
            ],
            "items": [
                {"id": 1, "name": "Regular ticket", "tax_rate": "9.00"},
                {"id": 2, "name": "T-shirt", "tax_rate": "21.00"},
            ],
        }
    }


@pytest.fixture
def run_config_data() -> dict[str, Any]:
    """A complete run configuration as it appears on disk."""
    return {
        "log": "DEBUG",
        "web_server": {"ssl_cert": "cert.pem", "ssl_key": "key.pem"},
        "pretix": {
            "oauth": {
                "client_id": "pretix-client",
                "client_secret": "pretix-secret",
                "redirect_uri": "https://ticketbooks.local/callback",
            },
            "url": "https://pretix.example.org",
            "event_specific": {
                "intro-2024": {
                    "split_per_product": True,
                    "cost_centers_per_product": {
                        "^Intro ticket": "INTRO",
                        "T-shirt": "MERCH",
                    },
                    "ignore_patterns": ["Donation"],
                    "gl_account": "8000",
                },
                "gala-2024": {
                    "split_per_product": False,
                    "cost_centers_per_product": {},
                    "ignore_patterns": [],
                    "gl_account": "8010",
                    "vat_code": "2",
                },
            },
        },
        "exact": {
            "oauth": {
                "client_id": "exact-client",
                "client_secret": "exact-secret",
                "redirect_uri": "https://ticketbooks.local/callback",
            },
            "gl_accounts": {"unassigned_payments": "1302", "bookkeeping": "5007"},
            "journals": {"sales": "0302"},
            "vat_codes": {"1": 9.0, "2": 21.0, "0": 0.0},
            "fee_cost_center": "TRX",
        },
        "credentials": {
            "pretix": {"access_token": "pretix-access", "refresh_token": "pretix-refresh"},
            "exact": {"access_token": "exact-access", "refresh_token": "exact-refresh"},
        },
    }
