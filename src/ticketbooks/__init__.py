"""ticketbooks - weekly reconciliation of pretix ticket sales with Exact Online."""

__version__ = "0.1.0"

from ticketbooks.aggregation import OrderExportTotals, UnknownSaleItemError
from ticketbooks.clients import (
    APIError,
    AuthenticationError,
    ExactClient,
    Filter,
    FilterOp,
    Guid,
    NoDivisionError,
    PretixClient,
)
from ticketbooks.config import RunConfig, configure_logging, get_settings
from ticketbooks.exports import DataExporter, ExportState
from ticketbooks.ledger import ClassificationError, LedgerClassifier, LedgerLine
from ticketbooks.orchestrator import EventSummary, collect_event_summaries

__all__ = [
    # Version
    "__version__",
    # Clients
    "PretixClient",
    "ExactClient",
    "APIError",
    "AuthenticationError",
    "NoDivisionError",
    "Filter",
    "FilterOp",
    "Guid",
    # Pipeline
    "DataExporter",
    "ExportState",
    "EventSummary",
    "OrderExportTotals",
    "UnknownSaleItemError",
    "collect_event_summaries",
    "LedgerClassifier",
    "LedgerLine",
    "ClassificationError",
    # Config
    "RunConfig",
    "get_settings",
    "configure_logging",
]
