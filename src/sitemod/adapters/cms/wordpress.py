"""WordPress REST API adapter."""

from __future__ import annotations

import html
import posixpath
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple
from urllib.parse import urlparse

from sitemod.adapters.cms.base import Handler, HttpProviderAdapter, as_list, nest, unchanged
from sitemod.adapters.cms.credentials import clean_domain, require_fields, wordpress_auth
from sitemod.adapters.cms.http import CMSHttpClient
from sitemod.domain.modifications import (
    HOMEPAGE_TARGETS,
    ActionPayload,
    ActionType,
    AltTextPayload,
    ErrorKind,
    HeadingPayload,
    InternalLinksPayload,
    MetaPayload,
    ModificationError,
    ModificationRequest,
    Provider,
    RollbackRecord,
    content_not_found,
)

YOAST_TITLE = "_yoast_wpseo_title"
YOAST_DESCRIPTION = "_yoast_wpseo_metadesc"

_CONTENT_KINDS = ("posts", "pages")
_H1_PATTERN = re.compile(r"(<h1\b[^>]*>)(.*?)(</h1>)", re.IGNORECASE | re.DOTALL)
_TAG_PATTERN = re.compile(r"<[^>]+>")
_SEGMENT_PATTERN = re.compile(r"(<a\b[^>]*>.*?</a>|<[^>]+>)", re.IGNORECASE | re.DOTALL)


@dataclass(frozen=True)
class WordPressContent:
    kind: str
    id: int
    data: Dict[str, Any]

    @property
    def resource(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "id": self.id,
            "slug": self.data.get("slug"),
            "link": self.data.get("link"),
        }

    def raw(self, field: str) -> str:
        value = self.data.get(field)
        if isinstance(value, dict):
            raw = value.get("raw")
            if raw is None:
                raw = value.get("rendered")
            return str(raw or "")
        return str(value or "")

    def meta(self) -> Dict[str, Any]:
        # WordPress serialises an empty meta object as [].
        meta = self.data.get("meta")
        return dict(meta) if isinstance(meta, dict) else {}


class WordPressAdapter(HttpProviderAdapter):
    provider = Provider.WORDPRESS
    supported_actions = frozenset(
        {
            ActionType.META,
            ActionType.HEADING,
            ActionType.ALT_TEXT,
            ActionType.SITEMAP,
            ActionType.INTERNAL_LINKS,
        }
    )
    managed_actions = {
        ActionType.SITEMAP: "WordPress generates /wp-sitemap.xml automatically; no change was written",
    }
    preflight_path = "users/me"

    def _validate(self, credentials: Dict[str, Any]) -> None:
        values = require_fields(self.provider, credentials, ["domain"])
        self._domain = clean_domain(values["domain"])
        self._auth = wordpress_auth(credentials)

    def _build_client(self) -> CMSHttpClient:
        return CMSHttpClient(
            self.provider.value,
            f"https://{self._domain}/wp-json/wp/v2",
            {
                "Authorization": self._auth.header,
                "Accept": "application/json",
                "Content-Type": "application/json",
            },
            session=self._session,
            timeout=self._settings.request_timeout,
        )

    def _handlers(self) -> Dict[ActionType, Handler]:
        return {
            ActionType.META: self._update_meta,
            ActionType.HEADING: self._update_heading,
            ActionType.ALT_TEXT: self._update_alt_text,
            ActionType.INTERNAL_LINKS: self._insert_links,
        }

    # ------------------------------------------------------------------
    # Target resolution
    # ------------------------------------------------------------------

    def resolve_content(self, target: str) -> WordPressContent | None:
        target = target.strip()
        if target in HOMEPAGE_TARGETS:
            return self._front_page()
        kind, ident = _split_prefix(target)
        if kind in _CONTENT_KINDS and ident:
            return self._lookup(kind, ident)
        slug = _slug(target)
        if slug:
            for kind in _CONTENT_KINDS:
                found = self._by_slug(kind, slug)
                if found is not None:
                    return found
        if target.isdigit():
            for kind in _CONTENT_KINDS:
                found = self._fetch(kind, target)
                if found is not None:
                    return found
        return None

    def _lookup(self, kind: str, ident: str) -> WordPressContent | None:
        if ident.isdigit():
            return self._fetch(kind, ident)
        return self._by_slug(kind, ident)

    def _by_slug(self, kind: str, slug: str) -> WordPressContent | None:
        items = as_list(self.client.get(kind, params={"slug": slug, "context": "edit", "per_page": 1}), kind)
        if items and _numeric(items[0].get("id")):
            return _content(kind, items[0])
        return None

    def _fetch(self, kind: str, ident: str | int) -> WordPressContent | None:
        item = self.client.get(f"{kind}/{ident}", params={"context": "edit"}, allow_missing=True)
        if isinstance(item, dict) and _numeric(item.get("id")):
            return _content(kind, item)
        return None

    def _front_page(self) -> WordPressContent | None:
        settings = self.client.get("settings")
        page_id = settings.get("page_on_front") if isinstance(settings, dict) else None
        if _numeric(page_id) and int(page_id) > 0:
            return self._fetch("pages", int(page_id))
        return None

    def _require_content(self, target: str) -> WordPressContent:
        content = self.resolve_content(target)
        if content is None:
            raise content_not_found(self.provider.value, target)
        return content

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _update_meta(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, MetaPayload)
        content = self.resolve_content(request.target)
        if content is None:
            if request.target.strip() in HOMEPAGE_TARGETS:
                return self._update_site_settings(request, payload)
            raise content_not_found(self.provider.value, request.target)

        meta = content.meta()
        plan: List[Tuple[Tuple[str, ...], str, str]] = []
        if payload.title is not None:
            if YOAST_TITLE in meta:
                plan.append((("meta", YOAST_TITLE), payload.title, str(meta.get(YOAST_TITLE) or "")))
            else:
                plan.append((("title",), payload.title, content.raw("title")))
        if payload.description is not None:
            if YOAST_DESCRIPTION in meta:
                plan.append((("meta", YOAST_DESCRIPTION), payload.description, str(meta.get(YOAST_DESCRIPTION) or "")))
            else:
                plan.append((("excerpt",), payload.description, content.raw("excerpt")))

        if all(desired == current for _, desired, current in plan):
            return self._record(
                request,
                "wordpress_meta",
                resource=content.resource,
                original=nest((path, request.changes.before) for path, _, _ in plan),
                alreadyApplied=True,
                noop=True,
            )

        body = nest((path, desired) for path, desired, _ in plan)
        original = nest((path, current) for path, _, current in plan)
        self.client.post(f"{content.kind}/{content.id}", body)
        return self._record(request, "wordpress_meta", resource=content.resource, original=original)

    def _update_site_settings(self, request: ModificationRequest, payload: MetaPayload) -> RollbackRecord:
        settings = self.client.get("settings")
        if not isinstance(settings, dict):
            settings = {}
        desired = payload.fields()
        resource = {"kind": "settings"}
        if unchanged(settings, desired):
            return self._already_applied(request, "wordpress_site_settings", resource=resource, fields=desired)
        original = {key: str(settings.get(key) or "") for key in desired}
        self.client.post("settings", desired)
        return self._record(request, "wordpress_site_settings", resource=resource, original=original)

    def _update_heading(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, HeadingPayload)
        content = self._require_content(request.target)
        current = content.raw("content")
        updated, existing = _replace_h1(current, payload.h1)
        if existing is not None and existing == payload.h1:
            return self._already_applied(request, "wordpress_content", resource=content.resource, fields={"content": None})
        self.client.post(f"{content.kind}/{content.id}", {"content": updated})
        return self._record(
            request,
            "wordpress_content",
            resource=content.resource,
            original={"content": current},
            headingInserted=existing is None,
        )

    def _update_alt_text(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, AltTextPayload)
        media = self._resolve_media(request.target)
        if media is None:
            raise content_not_found(self.provider.value, request.target, "media")
        media_id = media["id"]
        current = str(media.get("alt_text") or "")
        resource = {"kind": "media", "id": media_id, "sourceUrl": media.get("source_url")}
        if current == payload.alt_text:
            return self._already_applied(request, "wordpress_media", resource=resource, fields={"alt_text": None})
        self.client.post(f"media/{media_id}", {"alt_text": payload.alt_text})
        return self._record(request, "wordpress_media", resource=resource, original={"alt_text": current})

    def _insert_links(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, InternalLinksPayload)
        content = self._require_content(request.target)
        current = content.raw("content")
        updated = current
        inserted: List[str] = []
        present: List[str] = []
        missing: List[str] = []
        for link in payload.links:
            if _has_link(updated, link.url):
                present.append(link.anchor)
                continue
            candidate = _link_first(updated, link.anchor, link.url)
            if candidate is None:
                missing.append(link.anchor)
            else:
                updated = candidate
                inserted.append(link.anchor)
        if not inserted:
            if missing:
                raise ModificationError(
                    ErrorKind.CONTENT_NOT_FOUND,
                    f"wordpress anchor text not found in '{request.target}': {', '.join(missing)}",
                )
            return self._already_applied(request, "wordpress_content", resource=content.resource, fields={"content": None})
        self.client.post(f"{content.kind}/{content.id}", {"content": updated})
        return self._record(
            request,
            "wordpress_content",
            resource=content.resource,
            original={"content": current},
            linksInserted=inserted,
            linksSkipped=missing or None,
        )

    def _resolve_media(self, target: str) -> Dict[str, Any] | None:
        target = target.strip()
        kind, ident = _split_prefix(target)
        if kind == "media" and ident.isdigit():
            target = ident
        if target.isdigit():
            return self._fetch_media(target)
        fragment = (urlparse(target).path or target).rstrip("/")
        basename = posixpath.basename(fragment)
        stem = posixpath.splitext(basename)[0]
        if not stem:
            return None
        results = as_list(self.client.get("media", params={"search": stem, "per_page": 20}), "media")
        hits = [item for item in results if _numeric(item.get("id"))]
        match = _best_media_match(hits, fragment, basename, stem)
        if match is None:
            return None
        return self._fetch_media(match["id"])

    def _fetch_media(self, media_id: str | int) -> Dict[str, Any] | None:
        item = self.client.get(f"media/{media_id}", params={"context": "edit"}, allow_missing=True)
        return item if isinstance(item, dict) and _numeric(item.get("id")) else None


def _numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, str)) and str(value).isdigit()


def _best_media_match(
    hits: List[Dict[str, Any]],
    fragment: str,
    basename: str,
    stem: str,
) -> Dict[str, Any] | None:
    """Pick the search hit for a target path.

    Uploads usually sit in dated folders (``uploads/2024/01/hero.jpg``), so a
    target such as ``/uploads/hero.jpg`` rarely matches as a whole. Preference
    goes to the full path, then the exact file name, then a resized or
    renamed variant of the same stem (``hero-scaled.jpg``).
    """

    sources = [(item, urlparse(str(item.get("source_url") or "")).path) for item in hits]
    for item, source in sources:
        if fragment and source.endswith(fragment):
            return item
    for item, source in sources:
        if posixpath.basename(source) == basename:
            return item
    for item, source in sources:
        if posixpath.splitext(posixpath.basename(source))[0].startswith(stem):
            return item
    return None


def _content(kind: str, item: Dict[str, Any]) -> WordPressContent:
    return WordPressContent(kind=kind, id=int(item["id"]), data=item)


def _split_prefix(target: str) -> Tuple[str, str]:
    parts = target.strip("/").split("/", 1)
    if len(parts) == 2 and parts[0] in (*_CONTENT_KINDS, "media"):
        return parts[0], parts[1].strip("/")
    return "", ""


def _slug(target: str) -> str:
    path = urlparse(target).path if "://" in target else target
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else ""


def _replace_h1(content: str, heading: str) -> Tuple[str, str | None]:
    """Replace the first ``<h1>`` text or prepend one; return the prior text."""

    match = _H1_PATTERN.search(content)
    escaped = html.escape(heading, quote=False)
    if match is None:
        return f"<h1>{escaped}</h1>\n\n{content}", None
    existing = html.unescape(_TAG_PATTERN.sub("", match.group(2))).strip()
    updated = content[: match.start()] + match.group(1) + escaped + match.group(3) + content[match.end():]
    return updated, existing


def _has_link(content: str, url: str) -> bool:
    for candidate in {url, html.escape(url)}:
        pattern = r"<a\b[^>]*href=[\"']" + re.escape(candidate) + r"[\"']"
        if re.search(pattern, content, re.IGNORECASE):
            return True
    return False


def _link_first(content: str, anchor: str, url: str) -> str | None:
    """Wrap the first plain-text occurrence of ``anchor`` in a link to ``url``."""

    segments = _SEGMENT_PATTERN.split(content)
    escaped_anchor = html.escape(anchor, quote=False)
    for index, segment in enumerate(segments):
        if _SEGMENT_PATTERN.fullmatch(segment):
            continue
        for needle in (anchor, escaped_anchor):
            position = segment.find(needle)
            if position >= 0:
                link = f'<a href="{html.escape(url)}">{needle}</a>'
                segments[index] = segment[:position] + link + segment[position + len(needle):]
                return "".join(segments)
    return None


__all__ = ["WordPressAdapter", "WordPressContent"]
