"""Human-readable instructions for applying a modification by hand.

The generator is pure: the same ``(action, target, changes)`` always yields
the same text, and nothing here touches the network.
"""

from __future__ import annotations

from typing import Callable, Dict, List

from .actions import (
    ActionPayload,
    ActionType,
    AltTextPayload,
    HeadingPayload,
    InternalLinksPayload,
    MetaPayload,
    RobotsPayload,
    SitemapPayload,
    decode_payload,
)
from .errors import ModificationError
from .models import ModificationChanges

HOMEPAGE_TARGETS = frozenset({"homepage", "/"})


def describe_target(target: str) -> str:
    if target.strip() in HOMEPAGE_TARGETS:
        return "the homepage"
    return target.strip()


def manual_instructions(
    action: ActionType,
    target: str,
    changes: ModificationChanges,
    payload: ActionPayload | None = None,
) -> str:
    """Render step-by-step instructions for ``action`` on ``target``."""

    action = ActionType.parse(action)
    if payload is None:
        try:
            payload = decode_payload(action, changes.after)
        except ModificationError:
            return _raw_instructions(action, target, changes)
    formatter = _FORMATTERS[action]
    return formatter(target, changes, payload)


def _quoted(value: str | None) -> str:
    if value is None or value == "":
        return "(empty)"
    return f'"{value}"'


def _previous(changes: ModificationChanges) -> List[str]:
    if changes.before:
        return [f"- Current value: {_quoted(changes.before)}"]
    return []


def _meta(target: str, changes: ModificationChanges, payload: ActionPayload) -> str:
    assert isinstance(payload, MetaPayload)
    lines = [f"Update meta tags for {describe_target(target)}:"]
    lines.extend(_previous(changes))
    if payload.title is not None:
        lines.append(f"- Set the <title> / SEO title to: {_quoted(payload.title)}")
    if payload.description is not None:
        lines.append(f"- Set the meta description to: {_quoted(payload.description)}")
    lines.append("- Save and publish the page, then confirm the new tags in the page source.")
    return "\n".join(lines)


def _heading(target: str, changes: ModificationChanges, payload: ActionPayload) -> str:
    assert isinstance(payload, HeadingPayload)
    lines = [f"Update the H1 heading on {describe_target(target)}:"]
    lines.append(f"- Change from: {_quoted(changes.before)}")
    lines.append(f"- Change to: {_quoted(payload.h1)}")
    lines.append("- Keep exactly one <h1> element on the page.")
    return "\n".join(lines)


def _alt_text(target: str, changes: ModificationChanges, payload: ActionPayload) -> str:
    assert isinstance(payload, AltTextPayload)
    lines = ["Update image alt text:"]
    lines.append(f"- Image: {describe_target(target)}")
    lines.append(f"- Current alt text: {_quoted(changes.before)}")
    lines.append(f"- New alt text: {_quoted(payload.alt_text)}")
    return "\n".join(lines)


def _robots(target: str, changes: ModificationChanges, payload: ActionPayload) -> str:
    assert isinstance(payload, RobotsPayload)
    lines = ["Update robots.txt at the site root:"]
    if changes.before:
        lines.append("- Replace the current rules:")
        lines.extend(f"    {line}" for line in changes.before.splitlines())
    lines.append("- With:")
    lines.extend(f"    {line}" for line in payload.content.splitlines())
    return "\n".join(lines)


def _sitemap(target: str, changes: ModificationChanges, payload: ActionPayload) -> str:
    assert isinstance(payload, SitemapPayload)
    lines = ["Update the XML sitemap:"]
    if payload.urls:
        lines.append("- Add or update these URLs:")
        lines.extend(f"    {url}" for url in payload.urls)
    else:
        lines.append(f"- Regenerate the sitemap for {describe_target(target)}.")
    lines.extend(_previous(changes))
    lines.append("- Resubmit the sitemap in Google Search Console once published.")
    return "\n".join(lines)


def _internal_links(target: str, changes: ModificationChanges, payload: ActionPayload) -> str:
    assert isinstance(payload, InternalLinksPayload)
    lines = [f"Add internal links on {describe_target(target)}:"]
    for link in payload.links:
        lines.append(f'- Link the text "{link.anchor}" to {link.url}')
    lines.append("- Use the first natural occurrence of each anchor text in the body copy.")
    return "\n".join(lines)


def _raw_instructions(action: ActionType, target: str, changes: ModificationChanges) -> str:
    lines = [f"Apply the {action.value} change on {describe_target(target)} by hand:"]
    lines.append(f"- Change from: {_quoted(changes.before)}")
    lines.append(f"- Change to: {_quoted(changes.after)}")
    return "\n".join(lines)


_FORMATTERS: Dict[ActionType, Callable[[str, ModificationChanges, ActionPayload], str]] = {
    ActionType.META: _meta,
    ActionType.HEADING: _heading,
    ActionType.ALT_TEXT: _alt_text,
    ActionType.ROBOTS: _robots,
    ActionType.SITEMAP: _sitemap,
    ActionType.INTERNAL_LINKS: _internal_links,
}


__all__ = ["HOMEPAGE_TARGETS", "describe_target", "manual_instructions"]
