"""Closed vocabulary of modification actions and their typed payloads.

Each action carries a JSON document in ``changes.after``; the dispatcher
decodes it once into one of the payload variants below so adapters never
re-parse the raw string.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Tuple, Union

from .errors import ErrorKind, ModificationError


class ActionType(str, Enum):
    META = "meta"
    HEADING = "heading"
    ROBOTS = "robots"
    SITEMAP = "sitemap"
    ALT_TEXT = "altText"
    INTERNAL_LINKS = "internalLinks"

    @classmethod
    def parse(cls, raw: Any) -> "ActionType":
        if isinstance(raw, ActionType):
            return raw
        value = str(raw or "").strip()
        if value == "h1":
            return cls.HEADING
        for member in cls:
            if member.value == value or member.value.lower() == value.lower():
                return member
        raise ModificationError(ErrorKind.INVALID_PAYLOAD, f"unknown action type '{value}'")


@dataclass(frozen=True)
class MetaPayload:
    title: str | None = None
    description: str | None = None

    def fields(self) -> Dict[str, str]:
        values: Dict[str, str] = {}
        if self.title is not None:
            values["title"] = self.title
        if self.description is not None:
            values["description"] = self.description
        return values


@dataclass(frozen=True)
class HeadingPayload:
    h1: str
    target_path: str | None = None


@dataclass(frozen=True)
class AltTextPayload:
    alt_text: str


@dataclass(frozen=True)
class RobotsPayload:
    content: str


@dataclass(frozen=True)
class SitemapPayload:
    urls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class InternalLink:
    anchor: str
    url: str


@dataclass(frozen=True)
class InternalLinksPayload:
    links: Tuple[InternalLink, ...] = field(default_factory=tuple)


ActionPayload = Union[
    MetaPayload,
    HeadingPayload,
    AltTextPayload,
    RobotsPayload,
    SitemapPayload,
    InternalLinksPayload,
]


def decode_payload(action: ActionType, raw: str | Mapping[str, Any] | None) -> ActionPayload:
    """Decode ``changes.after`` into the payload variant for ``action``."""

    if action is ActionType.SITEMAP and (raw is None or not str(raw).strip()):
        return SitemapPayload()
    data = _load_document(action, raw)
    decoder = _DECODERS[action]
    return decoder(data)


def _load_document(action: ActionType, raw: str | Mapping[str, Any] | None) -> Dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    if raw is None or not str(raw).strip():
        raise _invalid(action, "changes.after is empty")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise _invalid(action, f"changes.after is not valid JSON ({exc.msg})") from exc
    if not isinstance(data, dict):
        raise _invalid(action, "changes.after must be a JSON object")
    return data


def _invalid(action: ActionType, reason: str) -> ModificationError:
    return ModificationError(ErrorKind.INVALID_PAYLOAD, f"{action.value} payload invalid: {reason}")


def _optional_text(action: ActionType, data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise _invalid(action, f"'{key}' must be a string")
    return value


def _decode_meta(data: Dict[str, Any]) -> MetaPayload:
    title = _optional_text(ActionType.META, data, "title")
    description = _optional_text(ActionType.META, data, "description")
    if not title and not description:
        raise _invalid(ActionType.META, "expected 'title' and/or 'description'")
    return MetaPayload(title=title or None, description=description or None)


def _decode_heading(data: Dict[str, Any]) -> HeadingPayload:
    h1 = _optional_text(ActionType.HEADING, data, "h1")
    if not h1 or not h1.strip():
        raise _invalid(ActionType.HEADING, "'h1' is required")
    target_path = _optional_text(ActionType.HEADING, data, "targetPath")
    return HeadingPayload(h1=h1.strip(), target_path=target_path or None)


def _decode_alt_text(data: Dict[str, Any]) -> AltTextPayload:
    if "altText" not in data:
        raise _invalid(ActionType.ALT_TEXT, "'altText' is required")
    alt_text = _optional_text(ActionType.ALT_TEXT, data, "altText")
    return AltTextPayload(alt_text=alt_text or "")


def _decode_robots(data: Dict[str, Any]) -> RobotsPayload:
    content = _optional_text(ActionType.ROBOTS, data, "robotsContent")
    if content is None:
        content = _optional_text(ActionType.ROBOTS, data, "content")
    if not content or not content.strip():
        raise _invalid(ActionType.ROBOTS, "'robotsContent' is required")
    return RobotsPayload(content=content)


def _decode_sitemap(data: Dict[str, Any]) -> SitemapPayload:
    urls = data.get("urls", [])
    if not isinstance(urls, list) or not all(isinstance(item, str) for item in urls):
        raise _invalid(ActionType.SITEMAP, "'urls' must be a list of strings")
    return SitemapPayload(urls=tuple(url.strip() for url in urls if url.strip()))


def _decode_internal_links(data: Dict[str, Any]) -> InternalLinksPayload:
    raw_links = data.get("links")
    if not isinstance(raw_links, list) or not raw_links:
        raise _invalid(ActionType.INTERNAL_LINKS, "'links' must be a non-empty list")
    links: List[InternalLink] = []
    for item in raw_links:
        if not isinstance(item, dict):
            raise _invalid(ActionType.INTERNAL_LINKS, "each link must be an object")
        anchor = str(item.get("anchor") or "").strip()
        url = str(item.get("url") or "").strip()
        if not anchor or not url:
            raise _invalid(ActionType.INTERNAL_LINKS, "each link needs 'anchor' and 'url'")
        links.append(InternalLink(anchor=anchor, url=url))
    return InternalLinksPayload(links=tuple(links))


_DECODERS = {
    ActionType.META: _decode_meta,
    ActionType.HEADING: _decode_heading,
    ActionType.ALT_TEXT: _decode_alt_text,
    ActionType.ROBOTS: _decode_robots,
    ActionType.SITEMAP: _decode_sitemap,
    ActionType.INTERNAL_LINKS: _decode_internal_links,
}


__all__ = [
    "ActionPayload",
    "ActionType",
    "AltTextPayload",
    "HeadingPayload",
    "InternalLink",
    "InternalLinksPayload",
    "MetaPayload",
    "RobotsPayload",
    "SitemapPayload",
    "decode_payload",
]
