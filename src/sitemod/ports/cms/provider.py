"""Ports for CMS provider integrations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import FrozenSet

from sitemod.domain.modifications import (
    ActionPayload,
    ActionType,
    ModificationRequest,
    ModificationResult,
    Provider,
)


class ProviderAdapter(ABC):
    """Abstract adapter that applies one modification against one CMS backend."""

    provider: Provider
    supported_actions: FrozenSet[ActionType] = frozenset()

    def supports(self, action: ActionType) -> bool:
        return action in self.supported_actions

    @abstractmethod
    def check(self) -> None:
        """Confirm the connection is usable; raise ``ModificationError`` otherwise."""

    @abstractmethod
    def apply(self, request: ModificationRequest, payload: ActionPayload) -> ModificationResult:
        """Perform the write and return a result carrying the rollback record.

        Implementations raise ``ModificationError`` for every failure path.
        """
