"""HTTP client shared by the CMS adapters.

Classifies backend responses into the modification error taxonomy and owns
the single refresh-and-retry allowed for OAuth providers.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Mapping

import requests

from sitemod.domain.modifications import ErrorKind, ModificationError

TokenRefresher = Callable[[], "str | None"]

_DETAIL_LIMIT = 2000


class CMSHttpClient:
    def __init__(
        self,
        provider: str,
        base_url: str,
        headers: Mapping[str, str],
        *,
        session: requests.Session | None = None,
        timeout: float = 30,
        refresher: TokenRefresher | None = None,
    ) -> None:
        self._provider = provider
        self._base_url = base_url.rstrip("/")
        self._headers: Dict[str, str] = dict(headers)
        self._session = session or requests.Session()
        self._timeout = timeout
        self._refresher = refresher
        self._refresh_attempted = False
        self.refreshed_token: str | None = None

    @property
    def base_url(self) -> str:
        return self._base_url

    def get(self, path: str, *, params: Mapping[str, Any] | None = None, allow_missing: bool = False) -> Any:
        return self.request("GET", path, params=params, allow_missing=allow_missing)

    def post(self, path: str, payload: Any = None) -> Any:
        return self.request("POST", path, payload=payload)

    def put(self, path: str, payload: Any = None) -> Any:
        return self.request("PUT", path, payload=payload)

    def patch(self, path: str, payload: Any = None) -> Any:
        return self.request("PATCH", path, payload=payload)

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        payload: Any = None,
        allow_missing: bool = False,
    ) -> Any:
        url = self._url(path)
        response = self._send(method, url, params, payload)
        if response.status_code == 401:
            response = self._refresh_and_retry(method, url, params, payload, response)
        if response.status_code == 429:
            retry_after = response.headers.get("Retry-After") if response.headers else None
            message = f"{self._provider} rate limit exceeded"
            if retry_after:
                message = f"{message}; retry after {retry_after}s"
            raise ModificationError(
                ErrorKind.RATE_LIMITED,
                message,
                status=429,
                detail=_detail(response),
            )
        if allow_missing and response.status_code == 404:
            return None
        if response.status_code >= 400:
            raise ModificationError(
                ErrorKind.BACKEND_WRITE_FAILED,
                f"{self._provider} {method} {path} failed: {response.status_code}",
                status=response.status_code,
                detail=_detail(response),
            )
        return self._decode(method, path, response)

    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    def _send(
        self,
        method: str,
        url: str,
        params: Mapping[str, Any] | None,
        payload: Any,
    ) -> requests.Response:
        kwargs: Dict[str, Any] = {"headers": dict(self._headers), "timeout": self._timeout}
        if params:
            kwargs["params"] = dict(params)
        if payload is not None:
            kwargs["json"] = payload
        try:
            return self._session.request(method, url, **kwargs)
        except requests.Timeout as exc:
            raise ModificationError(
                ErrorKind.BACKEND_WRITE_FAILED,
                f"{self._provider} request timed out; outcome unknown",
                detail=str(exc),
            ) from exc
        except requests.RequestException as exc:
            raise ModificationError(
                ErrorKind.BACKEND_WRITE_FAILED,
                f"cannot reach {self._provider} API: {exc.__class__.__name__}",
                detail=str(exc),
            ) from exc

    def _refresh_and_retry(
        self,
        method: str,
        url: str,
        params: Mapping[str, Any] | None,
        payload: Any,
        response: requests.Response,
    ) -> requests.Response:
        if self._refresher is None or self._refresh_attempted:
            raise self._auth_expired(response, "credentials rejected")
        self._refresh_attempted = True
        token = self._refresher()
        if not token:
            raise self._auth_expired(response, "token expired and refresh failed; reconnect the account")
        self.refreshed_token = token
        self._headers["Authorization"] = f"Bearer {token}"
        retried = self._send(method, url, params, payload)
        if retried.status_code == 401:
            raise self._auth_expired(retried, "credentials rejected after token refresh")
        return retried

    def _auth_expired(self, response: requests.Response, reason: str) -> ModificationError:
        return ModificationError(
            ErrorKind.AUTH_EXPIRED,
            f"{self._provider} {reason}",
            status=response.status_code,
            detail=_detail(response),
        )

    def _decode(self, method: str, path: str, response: requests.Response) -> Any:
        if response.status_code == 204 or not (response.text or "").strip():
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise ModificationError(
                ErrorKind.BACKEND_WRITE_FAILED,
                f"{self._provider} {method} {path} returned invalid JSON",
                status=response.status_code,
                detail=_detail(response),
            ) from exc


def _detail(response: requests.Response) -> str:
    text = getattr(response, "text", "") or ""
    return text[:_DETAIL_LIMIT]


__all__ = ["CMSHttpClient", "TokenRefresher"]
