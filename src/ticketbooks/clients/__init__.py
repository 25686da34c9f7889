"""API clients for pretix and Exact Online."""

from ticketbooks.clients.base import APIError, AuthenticationError, BearerAPIClient
from ticketbooks.clients.exact import ExactClient, NoDivisionError, SalesEntryLine
from ticketbooks.clients.odata import Filter, FilterFunction, FilterOp, Guid
from ticketbooks.clients.pretix import PretixClient

__all__ = [
    # Errors
    "APIError",
    "AuthenticationError",
    "NoDivisionError",
    # Clients
    "BearerAPIClient",
    "PretixClient",
    "ExactClient",
    "SalesEntryLine",
    # OData filters
    "Filter",
    "FilterFunction",
    "FilterOp",
    "Guid",
]
