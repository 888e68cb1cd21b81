"""Application service dispatching modification requests to provider adapters.

``ModificationService.apply`` never raises: every fault becomes a failed
``ModificationResult`` carrying a classified ``ModificationError``. Unsupported
action and provider failures also carry manual instructions so the caller can
still finish the change by hand.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Mapping

import requests

from sitemod.adapters.cms.registry import build_adapter
from sitemod.domain.modifications import (
    ActionPayload,
    CMSConnection,
    ErrorKind,
    ModificationError,
    ModificationRequest,
    ModificationResult,
    Provider,
    decode_payload,
    manual_instructions,
)
from sitemod.settings import SETTINGS, RuntimeSettings
from sitemod.utils.telemetry import record_event

_INSTRUCTION_KINDS = {ErrorKind.UNSUPPORTED_ACTION, ErrorKind.UNSUPPORTED_PROVIDER}
_INSTRUCTION_ONLY = {Provider.MANUAL, Provider.SQUARESPACE}


@dataclass(frozen=True)
class ConnectionCheck:
    provider: str
    ok: bool
    error: ModificationError | None = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"provider": self.provider, "ok": self.ok}
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        return payload


class ModificationService:
    """Single entry point: route one request to one adapter and normalise the outcome."""

    def __init__(
        self,
        settings: RuntimeSettings = SETTINGS,
        *,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings
        self._session = session

    def apply(self, request: ModificationRequest, connection: CMSConnection) -> ModificationResult:
        started = time.perf_counter()
        result = self._dispatch(request, connection)
        self._record(request, connection, result, started)
        return result

    def apply_dict(
        self,
        request_payload: Mapping[str, Any],
        connection_payload: Mapping[str, Any],
    ) -> ModificationResult:
        """Wire-shape entry point; malformed documents become ``InvalidPayload`` failures."""

        try:
            request = ModificationRequest.from_dict(request_payload)
            connection = CMSConnection.from_dict(connection_payload)
        except ModificationError as exc:
            return ModificationResult.failed(exc)
        return self.apply(request, connection)

    def check_connection(self, connection: CMSConnection) -> ConnectionCheck:
        try:
            provider = Provider.parse(connection.provider)
            adapter = build_adapter(
                provider,
                connection.credentials,
                settings=self._settings,
                session=self._session,
            )
            adapter.check()
        except ModificationError as exc:
            return ConnectionCheck(provider=connection.provider, ok=False, error=exc)
        return ConnectionCheck(provider=provider.value, ok=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _dispatch(self, request: ModificationRequest, connection: CMSConnection) -> ModificationResult:
        payload: ActionPayload | None = None
        try:
            provider = Provider.parse(connection.provider)
            try:
                payload = decode_payload(request.action_type, request.changes.after)
            except ModificationError:
                # Instruction-only providers still render raw before/after text.
                if provider not in _INSTRUCTION_ONLY:
                    raise
            adapter = build_adapter(
                provider,
                connection.credentials,
                settings=self._settings,
                session=self._session,
            )
            return adapter.apply(request, payload)  # type: ignore[arg-type]
        except ModificationError as exc:
            return self._failure(request, exc, payload)
        except requests.RequestException as exc:
            error = ModificationError(
                ErrorKind.BACKEND_WRITE_FAILED,
                f"{connection.provider} request failed: {exc.__class__.__name__}",
                detail=str(exc),
            )
            return self._failure(request, error, payload)
        except (ValueError, TypeError, KeyError, AttributeError) as exc:
            # Backend answered 2xx with a body whose shape the adapter cannot use.
            error = ModificationError(
                ErrorKind.BACKEND_WRITE_FAILED,
                f"{connection.provider} returned an unexpected response",
                detail=f"{exc.__class__.__name__}: {exc}",
            )
            return self._failure(request, error, payload)

    def _failure(
        self,
        request: ModificationRequest,
        error: ModificationError,
        payload: ActionPayload | None,
    ) -> ModificationResult:
        instructions = None
        if error.kind in _INSTRUCTION_KINDS:
            instructions = manual_instructions(request.action_type, request.target, request.changes, payload)
        return ModificationResult.failed(error, instructions=instructions)

    def _record(
        self,
        request: ModificationRequest,
        connection: CMSConnection,
        result: ModificationResult,
        started: float,
    ) -> None:
        payload: Dict[str, Any] = {
            "provider": connection.provider,
            "action": request.action_type.value,
            "projectId": request.project_id,
        }
        if result.error is not None:
            payload["errorKind"] = result.error.kind.value
            payload["message"] = result.error.message
        if result.rollback_data is not None:
            payload["rollbackType"] = result.rollback_data.type
            if result.rollback_data.noop:
                payload["noop"] = True
        record_event(
            self._settings,
            "modification.apply",
            payload=payload,
            level="info" if result.success else "error",
            status="success" if result.success else "failure",
            component="dispatcher",
            correlation_id=request.rollback_token or None,
            duration_ms=round((time.perf_counter() - started) * 1000, 3),
        )


__all__ = ["ConnectionCheck", "ModificationService"]
