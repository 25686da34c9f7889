"""The JSON run configuration: OAuth clients, bookkeeping codes and event rules.

The file is read at start-up and written back after authorization, so
the models must round-trip without reordering or reformatting values.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, PrivateAttr, ValidationError

from ticketbooks.models import CostCenterCode, EventId, GLAccountCode, RegexPattern


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")
LEVEL_ALIASES = {"TRACE": "DEBUG", "WARN": "WARNING"}


class ConfigError(Exception):
    """The run configuration could not be read or written."""


class OAuthTokenPair(BaseModel):
    access_token: str
    refresh_token: str


class Credentials(BaseModel):
    """Authorized credentials. Managed by the program, not edited by hand."""

    pretix: OAuthTokenPair | None = None
    exact: OAuthTokenPair | None = None


class OAuth2Config(BaseModel):
    """An OAuth2 client registered with one of the platforms."""

    client_id: str
    client_secret: str
    # Must match the URI registered with the client. The callback server
    # answers on `/callback`.
    redirect_uri: str


class WebServerConfig(BaseModel):
    """Certificate for the OAuth2 callback server. OAuth2 requires HTTPS."""

    ssl_cert: Path
    ssl_key: Path


class EventConfig(BaseModel):
    """How the ledger lines of one pretix event are booked.

    With `split_per_product` false the event is booked as one sales line
    under `vat_code`. With it true every product becomes its own line; the
    first pattern in `cost_centers_per_product` matching the product name
    decides the cost center, and the product's tax rate decides the VAT code.
    """

    split_per_product: bool = False
    cost_centers_per_product: dict[RegexPattern, CostCenterCode] = Field(
        default_factory=dict
    )
    ignore_patterns: list[RegexPattern] = Field(default_factory=list)
    gl_account: GLAccountCode
    vat_code: str | None = None


class PretixConfig(BaseModel):
    oauth: OAuth2Config
    # Base URL of the pretix instance, without a trailing slash
    url: str
    event_specific: dict[EventId, EventConfig] = Field(default_factory=dict)


class ExactGLAccounts(BaseModel):
    unassigned_payments: GLAccountCode
    # Transaction fees are booked here
    bookkeeping: GLAccountCode


class ExactJournals(BaseModel):
    sales: str


class ExactConfig(BaseModel):
    oauth: OAuth2Config
    gl_accounts: ExactGLAccounts
    journals: ExactJournals
    # VAT code -> percentage, e.g. {"2": 21.0}
    vat_codes: dict[str, int | float] = Field(default_factory=dict)
    fee_cost_center: CostCenterCode | None = None


class RunConfig(BaseModel):
    """Top-level run configuration."""

    # A level ("info") or a list of directives ("info,httpx=warn")
    log: str | None = None
    web_server: WebServerConfig
    pretix: PretixConfig
    exact: ExactConfig
    credentials: Credentials | None = None

    # The document as read, rewritten on `write` with only `credentials` replaced
    _document: dict[str, Any] | None = PrivateAttr(default=None)

    @property
    def log_level(self) -> LogLevel | None:
        """Standard log level named by `log`, if any.

        The first directive without a `target=` prefix is used. `trace`
        counts as `DEBUG` and `warn` as `WARNING`.
        """
        if self.log is None:
            return None
        for directive in self.log.split(","):
            directive = directive.strip().upper()
            directive = LEVEL_ALIASES.get(directive, directive)
            if directive in LOG_LEVELS:
                return directive  # type: ignore[return-value]
        return None

    @property
    def log_targets(self) -> dict[str, LogLevel]:
        """Per-logger levels from `target=level` directives in `log`."""
        targets: dict[str, LogLevel] = {}
        if self.log is None:
            return targets
        for directive in self.log.split(","):
            target, sep, level = directive.partition("=")
            if not sep:
                continue
            level = level.strip().upper()
            level = LEVEL_ALIASES.get(level, level)
            if target.strip() and level in LOG_LEVELS:
                targets[target.strip()] = level  # type: ignore[assignment]
        return targets

    @classmethod
    def read(cls, path: Path | str) -> RunConfig:
        """Read the configuration from disk.

        Raises:
            ConfigError: If the file is missing or not a valid configuration.
        """
        path = Path(path)
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ConfigError(f"{path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise ConfigError(f"{path}: invalid JSON: {exc}") from exc

        try:
            config = cls.model_validate(document)
        except ValidationError as exc:
            raise ConfigError(f"{path}: {exc}") from exc
        config._document = document
        return config

    def write(self, path: Path | str) -> None:
        """Write the configuration to disk, pretty-printed.

        A configuration that was read from a file keeps that file's keys,
        key order and values. Only `credentials` is replaced.
        """
        if self._document is None:
            document = self.model_dump(mode="json", exclude_unset=True)
        else:
            document = dict(self._document)
            if self.credentials is not None:
                document["credentials"] = self.credentials.model_dump(
                    mode="json", exclude_unset=True
                )

        path = Path(path)
        try:
            path.write_text(
                json.dumps(document, indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as exc:
            raise ConfigError(f"{path}: {exc}") from exc

    def credentials_for(self, platform: Literal["pretix", "exact"]) -> OAuthTokenPair | None:
        """Stored token pair for a platform, if any."""
        if self.credentials is None:
            return None
        return getattr(self.credentials, platform)

    def store_credentials(
        self, platform: Literal["pretix", "exact"], tokens: OAuthTokenPair
    ) -> None:
        """Replace the stored token pair for a platform."""
        if self.credentials is None:
            self.credentials = Credentials()
        setattr(self.credentials, platform, tokens)
