"""Modification domain exports."""

from .actions import (
    ActionPayload,
    ActionType,
    AltTextPayload,
    HeadingPayload,
    InternalLink,
    InternalLinksPayload,
    MetaPayload,
    RobotsPayload,
    SitemapPayload,
    decode_payload,
)
from .errors import (
    ErrorKind,
    ModificationError,
    content_not_found,
    missing_credentials,
    unsupported_action,
)
from .instructions import HOMEPAGE_TARGETS, describe_target, manual_instructions
from .models import (
    CMSConnection,
    ModificationChanges,
    ModificationRequest,
    ModificationResult,
    Provider,
    RollbackRecord,
)

__all__ = [
    "ActionPayload",
    "ActionType",
    "AltTextPayload",
    "CMSConnection",
    "ErrorKind",
    "HOMEPAGE_TARGETS",
    "HeadingPayload",
    "InternalLink",
    "InternalLinksPayload",
    "MetaPayload",
    "ModificationChanges",
    "ModificationError",
    "ModificationRequest",
    "ModificationResult",
    "Provider",
    "RobotsPayload",
    "RollbackRecord",
    "SitemapPayload",
    "content_not_found",
    "decode_payload",
    "describe_target",
    "manual_instructions",
    "missing_credentials",
    "unsupported_action",
]
