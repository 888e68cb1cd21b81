"""Error taxonomy shared by the dispatcher and provider adapters."""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class ErrorKind(str, Enum):
    MISSING_CREDENTIALS = "MissingCredentials"
    AUTH_EXPIRED = "AuthExpired"
    RATE_LIMITED = "RateLimited"
    CONTENT_NOT_FOUND = "ContentNotFound"
    UNSUPPORTED_ACTION = "UnsupportedAction"
    UNSUPPORTED_PROVIDER = "UnsupportedProvider"
    BACKEND_WRITE_FAILED = "BackendWriteFailed"
    INVALID_PAYLOAD = "InvalidPayload"


class ModificationError(RuntimeError):
    """Raised by adapters with a stable ``kind`` and provider-specific diagnostics."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        status: int | None = None,
        detail: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = ErrorKind(kind)
        self.message = message
        self.status = status
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.status is not None:
            payload["status"] = self.status
        if self.detail:
            payload["detail"] = self.detail
        return payload

    def __repr__(self) -> str:
        return f"ModificationError({self.kind.value!r}, {self.message!r})"


def missing_credentials(provider: str, fields: list[str]) -> ModificationError:
    joined = ", ".join(fields)
    return ModificationError(
        ErrorKind.MISSING_CREDENTIALS,
        f"{provider} connection is missing required credentials: {joined}",
    )


def content_not_found(provider: str, target: str, what: str = "content") -> ModificationError:
    return ModificationError(
        ErrorKind.CONTENT_NOT_FOUND,
        f"{provider} {what} not found for target '{target}'",
    )


def unsupported_action(provider: str, action: str, reason: str | None = None) -> ModificationError:
    message = f"action '{action}' is not supported for {provider}"
    if reason:
        message = f"{message}: {reason}"
    return ModificationError(ErrorKind.UNSUPPORTED_ACTION, message)


__all__ = [
    "ErrorKind",
    "ModificationError",
    "content_not_found",
    "missing_credentials",
    "unsupported_action",
]
