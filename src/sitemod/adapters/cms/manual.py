"""Manual mode: no backend, instructions only."""

from __future__ import annotations

from typing import Any, Mapping

import requests

from sitemod.domain.modifications import (
    ActionPayload,
    ActionType,
    ModificationRequest,
    ModificationResult,
    Provider,
    RollbackRecord,
    manual_instructions,
)
from sitemod.ports.cms.provider import ProviderAdapter
from sitemod.settings import RuntimeSettings


class ManualAdapter(ProviderAdapter):
    provider = Provider.MANUAL
    supported_actions = frozenset(ActionType)

    def __init__(
        self,
        credentials: Mapping[str, Any] | None = None,
        *,
        settings: RuntimeSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings

    def check(self) -> None:
        return None

    def apply(self, request: ModificationRequest, payload: ActionPayload) -> ModificationResult:
        instructions = manual_instructions(request.action_type, request.target, request.changes, payload)
        # Nothing was written; the caller's "before" is the only prior state.
        record = RollbackRecord(
            type="manual",
            provider=self.provider.value,
            resource={"target": request.target, "action": request.action_type.value},
            original={"value": request.changes.before},
            details={"instructions": instructions, "noop": True},
            rollback_token=request.rollback_token,
        )
        return ModificationResult.succeeded(record, instructions=instructions)


__all__ = ["ManualAdapter"]
