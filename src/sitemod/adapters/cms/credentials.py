"""Credential validation and token refresh for CMS connections."""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping

import requests

from sitemod.domain.modifications import Provider, missing_credentials
from sitemod.settings import RuntimeSettings

WEBFLOW_TOKEN_URL = "https://api.webflow.com/oauth/access_token"

_SCHEME = re.compile(r"^https?://", re.IGNORECASE)


def _text(credentials: Mapping[str, Any], key: str) -> str:
    value = credentials.get(key)
    if value is None:
        return ""
    return str(value).strip()


def require_fields(provider: Provider, credentials: Mapping[str, Any], fields: Iterable[str]) -> Dict[str, str]:
    """Return the stripped values of ``fields`` or raise ``MissingCredentials``."""

    values = {field: _text(credentials, field) for field in fields}
    missing = [field for field, value in values.items() if not value]
    if missing:
        raise missing_credentials(provider.value, missing)
    return values


def clean_domain(domain: str) -> str:
    return _SCHEME.sub("", domain.strip()).rstrip("/")


def shop_subdomain(shop: str) -> str:
    cleaned = clean_domain(shop)
    return cleaned.replace(".myshopify.com", "")


@dataclass(frozen=True)
class WordPressAuth:
    method: str
    header: str


def wordpress_auth(credentials: Mapping[str, Any]) -> WordPressAuth:
    """Pick application-password or JWT auth, honouring an explicit ``authMethod``."""

    username = _text(credentials, "username")
    password = _text(credentials, "applicationPassword")
    jwt = _text(credentials, "jwt")
    preferred = _text(credentials, "authMethod").lower()

    has_password = bool(username and password)
    if preferred == "jwt" and jwt:
        return WordPressAuth("jwt", f"Bearer {jwt}")
    if has_password:
        token = base64.b64encode(f"{username}:{password}".encode("utf-8")).decode("ascii")
        return WordPressAuth("application_password", f"Basic {token}")
    if jwt:
        return WordPressAuth("jwt", f"Bearer {jwt}")

    if username and not password:
        raise missing_credentials(Provider.WORDPRESS.value, ["applicationPassword"])
    if password and not username:
        raise missing_credentials(Provider.WORDPRESS.value, ["username"])
    raise missing_credentials(Provider.WORDPRESS.value, ["username", "applicationPassword", "jwt"])


class WebflowTokenRefresher:
    """Exchanges a Webflow refresh token for a new access token, once."""

    def __init__(
        self,
        settings: RuntimeSettings,
        refresh_token: str,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._refresh_token = refresh_token
        self._session = session or requests.Session()

    def __call__(self) -> str | None:
        if not self._refresh_token or not self._settings.webflow_oauth_configured:
            return None
        body = {
            "client_id": self._settings.webflow_client_id,
            "client_secret": self._settings.webflow_client_secret,
            "grant_type": "refresh_token",
            "refresh_token": self._refresh_token,
        }
        try:
            response = self._session.request(
                "POST",
                WEBFLOW_TOKEN_URL,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=self._settings.request_timeout,
            )
        except requests.RequestException:
            return None
        if response.status_code >= 400:
            return None
        try:
            payload = response.json()
        except ValueError:
            return None
        token = payload.get("access_token") if isinstance(payload, dict) else None
        return str(token) if token else None


__all__ = [
    "WEBFLOW_TOKEN_URL",
    "WebflowTokenRefresher",
    "WordPressAuth",
    "clean_domain",
    "require_fields",
    "shop_subdomain",
    "wordpress_auth",
]
