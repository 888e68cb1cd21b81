"""Value objects exchanged across the modification boundary."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping

from .actions import ActionType
from .errors import ErrorKind, ModificationError


class Provider(str, Enum):
    WEBFLOW = "webflow"
    WORDPRESS = "wordpress"
    SHOPIFY = "shopify"
    SQUARESPACE = "squarespace"
    MANUAL = "manual"

    @classmethod
    def parse(cls, raw: Any) -> "Provider":
        if isinstance(raw, Provider):
            return raw
        value = str(raw or "").strip().lower()
        for member in cls:
            if member.value == value:
                return member
        raise ModificationError(
            ErrorKind.UNSUPPORTED_PROVIDER,
            f"unsupported CMS provider: {value or '<empty>'}",
        )


@dataclass(frozen=True)
class ModificationChanges:
    before: str = ""
    after: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "ModificationChanges":
        data = data or {}
        after = data.get("after", "")
        if isinstance(after, Mapping):
            after = json.dumps(after, ensure_ascii=False)
        metadata = data.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise ModificationError(ErrorKind.INVALID_PAYLOAD, "changes.metadata must be an object")
        return cls(
            before=str(data.get("before") or ""),
            after=str(after or ""),
            metadata=dict(metadata),
        )

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"before": self.before, "after": self.after}
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


@dataclass(frozen=True)
class ModificationRequest:
    """One desired change against one project's site."""

    project_id: str
    action_type: ActionType
    target: str
    changes: ModificationChanges
    rollback_token: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "action_type", ActionType.parse(self.action_type))
        if not isinstance(self.target, str):
            raise ModificationError(ErrorKind.INVALID_PAYLOAD, "request target must be a string")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ModificationRequest":
        if not isinstance(data, Mapping):
            raise ModificationError(ErrorKind.INVALID_PAYLOAD, "modification request must be an object")
        changes = data.get("changes")
        if changes is not None and not isinstance(changes, Mapping):
            raise ModificationError(ErrorKind.INVALID_PAYLOAD, "changes must be an object")
        return cls(
            project_id=str(data.get("projectId") or ""),
            action_type=ActionType.parse(data.get("actionType")),
            target=str(data.get("target") or "").strip(),
            changes=ModificationChanges.from_dict(changes),
            rollback_token=str(data.get("rollbackToken") or ""),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projectId": self.project_id,
            "actionType": self.action_type.value,
            "target": self.target,
            "changes": self.changes.to_dict(),
            "rollbackToken": self.rollback_token,
        }


@dataclass(frozen=True)
class CMSConnection:
    """How to reach a backend; the provider string is validated by the dispatcher."""

    provider: str
    credentials: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CMSConnection":
        if not isinstance(data, Mapping):
            raise ModificationError(ErrorKind.INVALID_PAYLOAD, "connection must be an object")
        credentials = data.get("credentials") or {}
        if not isinstance(credentials, Mapping):
            raise ModificationError(ErrorKind.INVALID_PAYLOAD, "connection credentials must be an object")
        return cls(provider=str(data.get("provider") or ""), credentials=dict(credentials))


@dataclass(frozen=True)
class RollbackRecord:
    """Pre-change state captured by an adapter for one applied write."""

    type: str
    provider: str
    resource: Dict[str, Any] = field(default_factory=dict)
    original: Dict[str, Any] = field(default_factory=dict)
    details: Dict[str, Any] = field(default_factory=dict)
    rollback_token: str = ""

    def __post_init__(self) -> None:
        if not self.type:
            raise ValueError("rollback record type must be a non-empty string")

    @property
    def noop(self) -> bool:
        return bool(self.details.get("noop"))

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": self.type,
            "provider": self.provider,
            "resource": dict(self.resource),
            "original": dict(self.original),
        }
        if self.details:
            payload.update(self.details)
        if self.rollback_token:
            payload["rollbackToken"] = self.rollback_token
        return payload


@dataclass(frozen=True)
class ModificationResult:
    success: bool
    rollback_data: RollbackRecord | None = None
    error: ModificationError | None = None
    instructions: str | None = None

    def __post_init__(self) -> None:
        if self.success and (self.rollback_data is None or self.error is not None):
            raise ValueError("successful result requires rollback data and no error")
        if not self.success and (self.error is None or self.rollback_data is not None):
            raise ValueError("failed result requires an error and no rollback data")

    @classmethod
    def succeeded(cls, rollback: RollbackRecord, *, instructions: str | None = None) -> "ModificationResult":
        return cls(success=True, rollback_data=rollback, instructions=instructions)

    @classmethod
    def failed(cls, error: ModificationError, *, instructions: str | None = None) -> "ModificationResult":
        return cls(success=False, error=error, instructions=instructions)

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"success": self.success}
        if self.rollback_data is not None:
            payload["rollbackData"] = self.rollback_data.to_dict()
        if self.error is not None:
            payload["error"] = self.error.to_dict()
        if self.instructions:
            payload["instructions"] = self.instructions
        return payload


__all__ = [
    "CMSConnection",
    "ModificationChanges",
    "ModificationRequest",
    "ModificationResult",
    "Provider",
    "RollbackRecord",
]
