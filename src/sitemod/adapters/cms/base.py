"""Shared plumbing for HTTP-backed CMS adapters."""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Mapping, Tuple

import requests

from sitemod.adapters.cms.http import CMSHttpClient
from sitemod.domain.modifications import (
    ActionPayload,
    ActionType,
    ModificationRequest,
    ModificationResult,
    RollbackRecord,
    unsupported_action,
)
from sitemod.ports.cms.provider import ProviderAdapter
from sitemod.settings import RuntimeSettings
from sitemod.utils.telemetry import record_event

Handler = Callable[[ModificationRequest, ActionPayload], RollbackRecord]


class HttpProviderAdapter(ProviderAdapter):
    """Template for adapters that talk to a REST backend.

    Subclasses validate credentials in ``_validate`` (before any network
    access), describe their client in ``_build_client`` and map action types
    to handlers. Actions the backend manages on its own are listed in
    ``managed_actions`` and short-circuit to a no-op rollback record.
    """

    managed_actions: Mapping[ActionType, str] = {}
    preflight_path: str = ""

    def __init__(
        self,
        credentials: Mapping[str, Any],
        *,
        settings: RuntimeSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session or requests.Session()
        self._validate(dict(credentials or {}))
        self._client: CMSHttpClient | None = None

    @abstractmethod
    def _validate(self, credentials: Dict[str, Any]) -> None:
        """Store required credential values or raise ``MissingCredentials``."""

    @abstractmethod
    def _build_client(self) -> CMSHttpClient:
        ...

    @abstractmethod
    def _handlers(self) -> Dict[ActionType, Handler]:
        ...

    @property
    def client(self) -> CMSHttpClient:
        if self._client is None:
            self._client = self._build_client()
        return self._client

    def check(self) -> None:
        self.client.get(self.preflight_path)

    def apply(self, request: ModificationRequest, payload: ActionPayload) -> ModificationResult:
        action = request.action_type
        note = self.managed_actions.get(action)
        if note is not None:
            return ModificationResult.succeeded(self._managed_record(request, note))
        handler = self._handlers().get(action)
        if handler is None:
            raise unsupported_action(self.provider.value, action.value)
        self.check()
        record = handler(request, payload)
        return ModificationResult.succeeded(record)

    # ------------------------------------------------------------------
    # Rollback helpers
    # ------------------------------------------------------------------

    def _record(
        self,
        request: ModificationRequest,
        record_type: str,
        *,
        resource: Dict[str, Any],
        original: Dict[str, Any],
        **details: Any,
    ) -> RollbackRecord:
        extra = {key: value for key, value in details.items() if value is not None}
        if self._client is not None and self._client.refreshed_token:
            extra["refreshedAccessToken"] = self._client.refreshed_token
        return RollbackRecord(
            type=record_type,
            provider=self.provider.value,
            resource=resource,
            original=original,
            details=extra,
            rollback_token=request.rollback_token,
        )

    def _already_applied(
        self,
        request: ModificationRequest,
        record_type: str,
        *,
        resource: Dict[str, Any],
        fields: Mapping[str, Any],
    ) -> RollbackRecord:
        # The backend already holds the requested values (e.g. a retried call
        # whose first response was lost); the true prior value is the caller's.
        original = {name: request.changes.before for name in fields}
        return self._record(
            request,
            record_type,
            resource=resource,
            original=original,
            alreadyApplied=True,
            noop=True,
        )

    def _managed_record(self, request: ModificationRequest, note: str) -> RollbackRecord:
        return RollbackRecord(
            type=f"{self.provider.value}_managed",
            provider=self.provider.value,
            resource={"target": request.target, "action": request.action_type.value},
            original={},
            details={"noop": True, "message": note},
            rollback_token=request.rollback_token,
        )

    def _warn(self, request: ModificationRequest, event: str, payload: Dict[str, Any]) -> None:
        record_event(
            self._settings,
            event,
            payload=payload,
            level="warn",
            status="failure",
            component=self.provider.value,
            correlation_id=request.rollback_token or None,
        )


def unchanged(current: Mapping[str, Any], desired: Mapping[str, Any]) -> bool:
    return all((current.get(key) or "") == (value or "") for key, value in desired.items())


def nest(pairs: Iterable[Tuple[Tuple[str, ...], Any]]) -> Dict[str, Any]:
    """Build a nested request body from ``(path, value)`` pairs."""

    body: Dict[str, Any] = {}
    for path, value in pairs:
        node = body
        for key in path[:-1]:
            node = node.setdefault(key, {})
        node[path[-1]] = value
    return body


def as_list(payload: Any, key: str) -> List[Dict[str, Any]]:
    """Accept both bare-list and ``{key: [...]}`` listing responses.

    Entries that are not JSON objects are dropped.
    """

    items = payload.get(key) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


__all__ = ["Handler", "HttpProviderAdapter", "as_list", "nest", "unchanged"]
