"""Runtime settings for the sitemod engine."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from sitemod import __version__

DEFAULT_REQUEST_TIMEOUT = 30
DEFAULT_SHOPIFY_API_VERSION = "2023-10"


@dataclass(frozen=True)
class RuntimeSettings:
    home_dir: Path
    state_dir: Path
    log_dir: Path
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    shopify_api_version: str = DEFAULT_SHOPIFY_API_VERSION
    webflow_client_id: str | None = None
    webflow_client_secret: str | None = None
    cli_version: str = __version__

    @property
    def webflow_oauth_configured(self) -> bool:
        return bool(self.webflow_client_id and self.webflow_client_secret)


def _default_home_dir() -> Path:
    override = os.environ.get("SITEMOD_HOME")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".sitemod"


def _timeout_from_env() -> float:
    raw = os.environ.get("SITEMOD_REQUEST_TIMEOUT")
    if not raw:
        return DEFAULT_REQUEST_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_REQUEST_TIMEOUT
    return value if value > 0 else DEFAULT_REQUEST_TIMEOUT


def load_settings() -> RuntimeSettings:
    base = _default_home_dir()
    return RuntimeSettings(
        home_dir=base,
        state_dir=base / "state",
        log_dir=base / "logs",
        request_timeout=_timeout_from_env(),
        shopify_api_version=os.environ.get("SITEMOD_SHOPIFY_API_VERSION") or DEFAULT_SHOPIFY_API_VERSION,
        webflow_client_id=os.environ.get("WEBFLOW_CLIENT_ID") or None,
        webflow_client_secret=os.environ.get("WEBFLOW_CLIENT_SECRET") or None,
    )


SETTINGS = load_settings()
