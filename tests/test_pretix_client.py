"""Tests for the pretix API client."""

from unittest.mock import patch

import pytest

from ticketbooks.clients.base import APIError, AuthenticationError
from ticketbooks.clients.pretix import PretixClient


@pytest.fixture
def client():
    """Create a PretixClient instance."""
    return PretixClient("pretix-token", "https://pretix.example.org/")


class TestPretixClientInit:
    """Tests for PretixClient initialization."""

    def test_init_strips_trailing_slash(self, client):
        """Test that trailing slash is stripped from base URL."""
        assert client.base_url == "https://pretix.example.org"

    def test_url(self, client):
        """Test building absolute URLs from API paths."""
        assert client.url("/api/v1/organizers/") == "https://pretix.example.org/api/v1/organizers/"

    def test_headers_carry_bearer_token(self, client):
        """Test that requests authenticate with the access token."""
        headers = client._get_headers()

        assert headers["Authorization"] == "Bearer pretix-token"
        assert headers["Accept"] == "application/json"


class TestPagination:
    """Tests for following paginated list endpoints."""

    @pytest.mark.asyncio
    async def test_follows_next_until_null(self, client, mock_http, make_response):
        """Test that every page is fetched and concatenated."""
        page2 = "https://pretix.example.org/api/v1/organizers/?page=2"
        mock_http.request.side_effect = [
            make_response(json_data={"results": [{"slug": "a", "name": "A"}], "next": page2}),
            make_response(json_data={"results": [{"slug": "b", "name": "B"}], "next": None}),
        ]

        with patch.object(client, "_get_client", return_value=mock_http):
            organizers = await client.list_organizers()

        assert [o.slug for o in organizers] == ["a", "b"]
        urls = [call.kwargs["url"] for call in mock_http.request.call_args_list]
        assert urls == ["https://pretix.example.org/api/v1/organizers/", page2]

    @pytest.mark.asyncio
    async def test_empty_list(self, client, mock_http, make_response):
        """Test an endpoint with no results."""
        mock_http.request.return_value = make_response(
            json_data={"results": [], "next": None}
        )

        with patch.object(client, "_get_client", return_value=mock_http):
            assert await client.list_paginated("/api/v1/organizers/") == []

    @pytest.mark.asyncio
    async def test_invalid_page_raises(self, client, mock_http, make_response):
        """Test that a body without results is rejected."""
        mock_http.request.return_value = make_response(json_data={"detail": "nope"})

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(APIError, match="Invalid list response"):
                await client.list_paginated("/api/v1/organizers/")

    @pytest.mark.asyncio
    async def test_list_events(self, client, mock_http, make_response):
        """Test listing the events of an organizer."""
        mock_http.request.return_value = make_response(
            json_data={
                "results": [
                    {"slug": "intro-2024", "name": {"en": "Intro 2024"}, "live": True},
                    {"slug": "old", "name": {"nl": "Oud"}, "live": False},
                ],
                "next": None,
            }
        )

        with patch.object(client, "_get_client", return_value=mock_http):
            events = await client.list_events("club")

        assert mock_http.request.call_args.kwargs["url"] == (
            "https://pretix.example.org/api/v1/organizers/club/events/"
        )
        assert events[0].live is True
        assert events[0].display_name() == "Intro 2024"
        assert events[1].display_name() == "old"


class TestErrors:
    """Tests for error handling."""

    @pytest.mark.asyncio
    async def test_unauthorized(self, client, mock_http, make_response):
        """Test that 401 raises AuthenticationError."""
        mock_http.request.return_value = make_response(status_code=401)

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(AuthenticationError):
                await client.list_organizers()

    @pytest.mark.asyncio
    async def test_server_error_keeps_details(self, client, mock_http, make_response):
        """Test that error bodies are attached to the exception."""
        mock_http.request.return_value = make_response(
            status_code=500, json_data={"detail": "boom"}
        )

        with patch.object(client, "_get_client", return_value=mock_http):
            with pytest.raises(APIError) as exc_info:
                await client.get(client.url("/api/v1/organizers/"))

        assert exc_info.value.status_code == 500
        assert exc_info.value.details == {"detail": "boom"}

    @pytest.mark.asyncio
    async def test_poll_returns_raw_response(self, client, mock_http, make_response):
        """Test that polling leaves status handling to the caller."""
        response = make_response(status_code=409)
        mock_http.request.return_value = response

        with patch.object(client, "_get_client", return_value=mock_http):
            assert await client.poll("https://pretix.example.org/dl/1/") is response
