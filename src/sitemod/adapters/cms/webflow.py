"""Webflow Data API adapter.

Webflow stages every change until the site is published, so each successful
write is followed by a publish call. Static pages expose no heading field;
for those the adapter injects a marker-delimited script into the site's
custom code and records the marker for exact removal.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Tuple

from sitemod.adapters.cms.base import Handler, HttpProviderAdapter, as_list, nest
from sitemod.adapters.cms.credentials import WebflowTokenRefresher, require_fields
from sitemod.adapters.cms.http import CMSHttpClient
from sitemod.domain.modifications import (
    HOMEPAGE_TARGETS,
    ActionPayload,
    ActionType,
    HeadingPayload,
    MetaPayload,
    ModificationError,
    ModificationRequest,
    Provider,
    RollbackRecord,
    content_not_found,
)

WEBFLOW_API = "https://api.webflow.com"
HEADING_FIELDS = ("heading", "h1", "title")
MARKER_PREFIX = "sitemod-heading"

_HOME_SLUGS = {"", "index", "home"}
_NATIVE_ID = re.compile(r"^[0-9a-f]{24}$", re.IGNORECASE)


@dataclass(frozen=True)
class WebflowPage:
    id: str
    slug: str
    data: Dict[str, Any]

    @property
    def path(self) -> str:
        path = self.data.get("path") or self.data.get("publishedPath")
        if path:
            return str(path)
        return "/" if self.slug in _HOME_SLUGS else f"/{self.slug}"

    @property
    def collection_id(self) -> str | None:
        value = self.data.get("collectionId") or self.data.get("cmsLocaleId")
        return str(value) if value else None

    @property
    def resource(self) -> Dict[str, Any]:
        return {"kind": "page", "id": self.id, "slug": self.slug, "path": self.path}


class WebflowAdapter(HttpProviderAdapter):
    provider = Provider.WEBFLOW
    supported_actions = frozenset({ActionType.META, ActionType.HEADING, ActionType.SITEMAP})
    managed_actions = {
        ActionType.SITEMAP: "Webflow regenerates sitemap.xml automatically on publish; no change was written",
    }

    def _validate(self, credentials: Dict[str, Any]) -> None:
        values = require_fields(self.provider, credentials, ["siteId", "accessToken"])
        self._site_id = values["siteId"]
        self._access_token = values["accessToken"]
        self._refresh_token = str(credentials.get("refreshToken") or "").strip() or None

    @property
    def preflight_path(self) -> str:  # type: ignore[override]
        return f"sites/{self._site_id}"

    def _build_client(self) -> CMSHttpClient:
        refresher = None
        if self._refresh_token:
            refresher = WebflowTokenRefresher(self._settings, self._refresh_token, session=self._session)
        return CMSHttpClient(
            self.provider.value,
            WEBFLOW_API,
            {
                "Authorization": f"Bearer {self._access_token}",
                "accept-version": "1.0.0",
                "Content-Type": "application/json",
            },
            session=self._session,
            timeout=self._settings.request_timeout,
            refresher=refresher,
        )

    def _handlers(self) -> Dict[ActionType, Handler]:
        return {
            ActionType.META: self._update_meta,
            ActionType.HEADING: self._update_heading,
        }

    # ------------------------------------------------------------------
    # Target resolution
    # ------------------------------------------------------------------

    def resolve_page(self, target: str) -> WebflowPage | None:
        target = target.strip()
        if target.startswith("pages/"):
            return self._fetch_page(target.split("/", 1)[1].strip("/"))
        pages = self._list_pages()
        if target in HOMEPAGE_TARGETS:
            for page in pages:
                if page.slug in _HOME_SLUGS or page.data.get("path") == "/":
                    return page
            return None
        slug = target.strip("/").split("/")[-1] if target.strip("/") else ""
        for page in pages:
            if slug and (page.slug == slug or page.path.strip("/") == target.strip("/")):
                return page
        for page in pages:
            if page.id == target:
                return page
        if _NATIVE_ID.match(target):
            return self._fetch_page(target)
        return None

    def _list_pages(self) -> List[WebflowPage]:
        payload = self.client.get(f"sites/{self._site_id}/pages")
        return [page for page in (_page(item) for item in as_list(payload, "pages")) if page is not None]

    def _fetch_page(self, page_id: str) -> WebflowPage | None:
        if not page_id:
            return None
        return _page(self.client.get(f"pages/{page_id}", allow_missing=True))

    def _require_page(self, target: str) -> WebflowPage:
        page = self.resolve_page(target)
        if page is None:
            raise content_not_found(self.provider.value, target, "page")
        return page

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _update_meta(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, MetaPayload)
        page = self._require_page(request.target)
        seo = page.data.get("seo")
        plan: List[Tuple[Tuple[str, ...], str, str]] = []
        if isinstance(seo, dict):
            if payload.title is not None:
                plan.append((("seo", "title"), payload.title, str(seo.get("title") or "")))
            if payload.description is not None:
                plan.append((("seo", "description"), payload.description, str(seo.get("description") or "")))
        else:
            if payload.title is not None:
                plan.append((("title",), payload.title, str(page.data.get("title") or "")))
            if payload.description is not None:
                plan.append((("metaDescription",), payload.description, str(page.data.get("metaDescription") or "")))

        if all(desired == current for _, desired, current in plan):
            return self._record(
                request,
                "webflow_page",
                resource=page.resource,
                original=nest((path, request.changes.before) for path, _, _ in plan),
                alreadyApplied=True,
                noop=True,
            )

        self.client.patch(f"pages/{page.id}", nest((path, desired) for path, desired, _ in plan))
        self._publish(request)
        return self._record(
            request,
            "webflow_page",
            resource=page.resource,
            original=nest((path, current) for path, _, current in plan),
        )

    def _update_heading(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, HeadingPayload)
        page = self._require_page(request.target)
        if page.collection_id:
            record = self._update_collection_item(request, page, payload)
            if record is not None:
                return record
        return self._inject_heading(request, page, payload)

    def _update_collection_item(
        self,
        request: ModificationRequest,
        page: WebflowPage,
        payload: HeadingPayload,
    ) -> RollbackRecord | None:
        collections = as_list(self.client.get(f"sites/{self._site_id}/collections"), "collections")
        for collection in collections:
            collection_id = str(collection.get("_id") or collection.get("id") or "")
            if not collection_id:
                continue
            if page.data.get("collectionId") and collection_id != page.collection_id:
                continue
            field_slug = _heading_field(collection)
            if field_slug is None:
                continue
            items = as_list(self.client.get(f"collections/{collection_id}/items"), "items")
            item = next((entry for entry in items if _item_slug(entry) == page.slug), None)
            if item is None:
                continue
            item_id = str(item.get("_id") or item.get("id"))
            current = str(_item_fields(item).get(field_slug) or "")
            resource = {
                "kind": "collection_item",
                "collectionId": collection_id,
                "itemId": item_id,
                "field": field_slug,
                "pageId": page.id,
                "slug": page.slug,
            }
            if current == payload.h1:
                return self._already_applied(request, "webflow_cms", resource=resource, fields={field_slug: None})
            self.client.patch(
                f"collections/{collection_id}/items/{item_id}",
                {"fields": {field_slug: payload.h1}},
            )
            self._publish(request)
            return self._record(request, "webflow_cms", resource=resource, original={field_slug: current})
        return None

    def _inject_heading(
        self,
        request: ModificationRequest,
        page: WebflowPage,
        payload: HeadingPayload,
    ) -> RollbackRecord:
        code = self.client.get(f"sites/{self._site_id}/code", allow_missing=True) or {}
        current_body = str(code.get("body") or "") if isinstance(code, dict) else ""
        marker = f"{MARKER_PREFIX}-{page.id}"
        block = heading_injection(marker, payload.target_path or page.path, payload.h1)
        resource = {"kind": "site_code", "siteId": self._site_id, "pageId": page.id, "slug": page.slug}
        if block in current_body:
            return self._record(
                request,
                "webflow_injected_code",
                resource=resource,
                original={"body": request.changes.before},
                marker=marker,
                alreadyApplied=True,
                noop=True,
            )
        updated_body = replace_marked_block(current_body, marker, block)
        self.client.put(f"sites/{self._site_id}/code", {"body": updated_body})
        self._publish(request)
        return self._record(
            request,
            "webflow_injected_code",
            resource=resource,
            original={"body": current_body},
            marker=marker,
            injectedBlock=block,
        )

    def _publish(self, request: ModificationRequest) -> None:
        try:
            self.client.post(f"sites/{self._site_id}/publish", {"domains": []})
        except ModificationError as exc:
            self._warn(
                request,
                "modification.publish_failed",
                {"siteId": self._site_id, "error": exc.to_dict()},
            )


def heading_injection(marker: str, path: str, heading: str) -> str:
    """Script block that sets (or creates) the H1 on ``path``; safe to re-apply."""

    text = json.dumps(heading).replace("</", "<\\/")
    target_path = json.dumps(path or "/").replace("</", "<\\/")
    return (
        f"<!-- {marker}:start -->\n"
        "<script>\n"
        "document.addEventListener('DOMContentLoaded', function () {\n"
        f"  if (window.location.pathname !== {target_path}) return;\n"
        "  var h1 = document.querySelector('h1');\n"
        "  if (!h1) {\n"
        "    h1 = document.createElement('h1');\n"
        "    document.body.insertBefore(h1, document.body.firstChild);\n"
        "  }\n"
        f"  h1.textContent = {text};\n"
        "});\n"
        "</script>\n"
        f"<!-- {marker}:end -->"
    )


def replace_marked_block(code: str, marker: str, block: str) -> str:
    pattern = re.compile(
        re.escape(f"<!-- {marker}:start -->") + r".*?" + re.escape(f"<!-- {marker}:end -->"),
        re.DOTALL,
    )
    if pattern.search(code):
        return pattern.sub(lambda _: block, code, count=1)
    if not code:
        return block
    return f"{code.rstrip()}\n{block}"


def remove_marked_block(code: str, marker: str) -> str:
    """Strip the injected block identified by ``marker``, leaving the rest untouched."""

    pattern = re.compile(
        r"\n?" + re.escape(f"<!-- {marker}:start -->") + r".*?" + re.escape(f"<!-- {marker}:end -->"),
        re.DOTALL,
    )
    return pattern.sub("", code, count=1)


def _page(item: Any) -> WebflowPage | None:
    if not isinstance(item, dict):
        return None
    page_id = item.get("_id") or item.get("id")
    if not page_id:
        return None
    return WebflowPage(id=str(page_id), slug=str(item.get("slug") or ""), data=item)


def _heading_field(collection: Dict[str, Any]) -> str | None:
    slugs = {str(field.get("slug")) for field in collection.get("fields") or [] if isinstance(field, dict)}
    for candidate in HEADING_FIELDS:
        if candidate in slugs:
            return candidate
    return None


def _item_fields(item: Dict[str, Any]) -> Dict[str, Any]:
    field_data = item.get("fieldData")
    if isinstance(field_data, dict):
        return field_data
    return item


def _item_slug(item: Dict[str, Any]) -> str:
    return str(_item_fields(item).get("slug") or item.get("slug") or "")


__all__ = [
    "WebflowAdapter",
    "WebflowPage",
    "heading_injection",
    "remove_marked_block",
    "replace_marked_block",
]
