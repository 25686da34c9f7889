"""structlog setup for ticketbooks runs.

Log lines carry amounts, Exact IDs and, around authorization, OAuth
material. Amounts and IDs are rendered as plain strings; token and
secret fields never reach the output.
"""

import logging
import sys
from collections.abc import Mapping
from decimal import Decimal
from typing import Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

from ticketbooks.config.settings import get_settings

SECRET_KEYS = frozenset(
    {"access_token", "refresh_token", "client_secret", "code", "authorization"}
)
REDACTED = "***"


def redact_secrets(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Mask OAuth tokens, client secrets and authorization codes."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def stringify_values(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    """Render Decimal amounts and other non-JSON scalars as their string form."""
    for key, value in event_dict.items():
        if isinstance(value, Decimal) or type(value).__name__ == "Guid":
            event_dict[key] = str(value)
    return event_dict


def _renderer(log_format: Literal["json", "console"]) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(
        colors=sys.stdout.isatty(),
        exception_formatter=structlog.dev.plain_traceback,
    )


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
    targets: Mapping[str, str] | None = None,
) -> None:
    """Configure structured logging for a run.

    Args:
        level: Root log level. Defaults to settings.
        format: Output format (json or console). Defaults to settings.
        targets: Per-logger levels, e.g. `{"httpx": "DEBUG"}`. httpx is
            kept at WARNING unless listed here.
    """
    settings = get_settings()
    root_level = getattr(logging, level or settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(root_level)

    # httpx logs every request at INFO
    logger_levels: dict[str, str] = {"httpx": "WARNING", **(targets or {})}
    for name, target_level in logger_levels.items():
        logging.getLogger(name).setLevel(target_level.upper())

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_secrets,
        stringify_values,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        _renderer(format or settings.log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
