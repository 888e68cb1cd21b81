from __future__ import annotations

import pytest

from sitemod.domain.modifications import (
    ActionType,
    AltTextPayload,
    ErrorKind,
    HeadingPayload,
    InternalLink,
    InternalLinksPayload,
    MetaPayload,
    ModificationError,
    RobotsPayload,
    SitemapPayload,
    decode_payload,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("meta", ActionType.META),
        ("altText", ActionType.ALT_TEXT),
        ("alttext", ActionType.ALT_TEXT),
        ("h1", ActionType.HEADING),
        (ActionType.ROBOTS, ActionType.ROBOTS),
    ],
)
def test_action_type_parse(raw: object, expected: ActionType) -> None:
    assert ActionType.parse(raw) is expected


def test_action_type_parse_rejects_unknown() -> None:
    with pytest.raises(ModificationError) as excinfo:
        ActionType.parse("schema")
    assert excinfo.value.kind is ErrorKind.INVALID_PAYLOAD


def test_decode_meta_accepts_partial_payload() -> None:
    payload = decode_payload(ActionType.META, '{"title": "Acme Widgets"}')
    assert payload == MetaPayload(title="Acme Widgets", description=None)
    assert payload.fields() == {"title": "Acme Widgets"}


def test_decode_meta_requires_title_or_description() -> None:
    with pytest.raises(ModificationError) as excinfo:
        decode_payload(ActionType.META, '{"keywords": "widgets"}')
    assert excinfo.value.kind is ErrorKind.INVALID_PAYLOAD


def test_decode_heading_strips_and_reads_target_path() -> None:
    payload = decode_payload(ActionType.HEADING, {"h1": "  About Acme ", "targetPath": "/about-us"})
    assert payload == HeadingPayload(h1="About Acme", target_path="/about-us")


def test_decode_alt_text_allows_empty_value() -> None:
    assert decode_payload(ActionType.ALT_TEXT, '{"altText": ""}') == AltTextPayload(alt_text="")
    with pytest.raises(ModificationError):
        decode_payload(ActionType.ALT_TEXT, "{}")


def test_decode_robots_accepts_either_key() -> None:
    assert decode_payload(ActionType.ROBOTS, '{"content": "User-agent: *"}') == RobotsPayload("User-agent: *")
    assert decode_payload(ActionType.ROBOTS, '{"robotsContent": "Disallow: /"}') == RobotsPayload("Disallow: /")


def test_decode_sitemap_tolerates_missing_document() -> None:
    assert decode_payload(ActionType.SITEMAP, "") == SitemapPayload()
    payload = decode_payload(ActionType.SITEMAP, '{"urls": [" https://acme.test/a ", ""]}')
    assert payload.urls == ("https://acme.test/a",)


def test_decode_internal_links() -> None:
    payload = decode_payload(
        ActionType.INTERNAL_LINKS,
        '{"links": [{"anchor": "pricing", "url": "/pricing"}]}',
    )
    assert payload == InternalLinksPayload(links=(InternalLink(anchor="pricing", url="/pricing"),))


@pytest.mark.parametrize(
    "action, raw",
    [
        (ActionType.META, ""),
        (ActionType.META, "not json"),
        (ActionType.META, "[1, 2]"),
        (ActionType.HEADING, '{"h1": "   "}'),
        (ActionType.HEADING, '{"h1": 42}'),
        (ActionType.INTERNAL_LINKS, '{"links": []}'),
        (ActionType.INTERNAL_LINKS, '{"links": [{"anchor": "x"}]}'),
        (ActionType.SITEMAP, '{"urls": "https://acme.test"}'),
    ],
)
def test_decode_rejects_malformed_payloads(action: ActionType, raw: str) -> None:
    with pytest.raises(ModificationError) as excinfo:
        decode_payload(action, raw)
    assert excinfo.value.kind is ErrorKind.INVALID_PAYLOAD
    assert action.value in excinfo.value.message
