"""Squarespace placeholder.

Squarespace exposes no public content-write API, so every action fails with
``UnsupportedProvider``; the dispatcher attaches manual instructions.
"""

from __future__ import annotations

from typing import Any, Mapping

import requests

from sitemod.domain.modifications import (
    ActionPayload,
    ErrorKind,
    ModificationError,
    ModificationRequest,
    ModificationResult,
    Provider,
)
from sitemod.ports.cms.provider import ProviderAdapter
from sitemod.settings import RuntimeSettings


class SquarespaceAdapter(ProviderAdapter):
    provider = Provider.SQUARESPACE

    def __init__(
        self,
        credentials: Mapping[str, Any],
        *,
        settings: RuntimeSettings,
        session: requests.Session | None = None,
    ) -> None:
        self._settings = settings

    def _unsupported(self) -> ModificationError:
        return ModificationError(
            ErrorKind.UNSUPPORTED_PROVIDER,
            "squarespace has no content API for automated changes; apply them in the Squarespace editor",
        )

    def check(self) -> None:
        raise self._unsupported()

    def apply(self, request: ModificationRequest, payload: ActionPayload) -> ModificationResult:
        raise self._unsupported()


__all__ = ["SquarespaceAdapter"]
