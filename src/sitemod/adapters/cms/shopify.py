"""Shopify Admin REST API adapter.

SEO title and description live in the ``global`` metafield namespace
(``title_tag`` / ``description_tag``) of products and pages and are written
through the resource's ``metafields_global_*`` attributes in a single
update. The storefront homepage's tags are Online Store preferences, which
the Admin REST API does not expose, so homepage meta changes are reported as
unsupported.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Tuple
from urllib.parse import urlparse

from sitemod.adapters.cms.base import Handler, HttpProviderAdapter, as_list
from sitemod.adapters.cms.credentials import require_fields, shop_subdomain
from sitemod.adapters.cms.http import CMSHttpClient
from sitemod.domain.modifications import (
    HOMEPAGE_TARGETS,
    ActionPayload,
    ActionType,
    AltTextPayload,
    HeadingPayload,
    MetaPayload,
    ModificationRequest,
    Provider,
    RollbackRecord,
    content_not_found,
    unsupported_action,
)

SEO_NAMESPACE = "global"
TITLE_KEY = "title_tag"
DESCRIPTION_KEY = "description_tag"

# URL segment -> (collection endpoint, singular key)
_RESOURCES = {
    "products": ("products", "product"),
    "pages": ("pages", "page"),
}


@dataclass(frozen=True)
class ShopifyResource:
    kind: str
    id: int
    data: Dict[str, Any]

    @property
    def singular(self) -> str:
        return _RESOURCES[self.kind][1]

    @property
    def resource(self) -> Dict[str, Any]:
        return {"kind": self.singular, "id": self.id, "handle": self.data.get("handle")}


class ShopifyAdapter(HttpProviderAdapter):
    provider = Provider.SHOPIFY
    supported_actions = frozenset(
        {ActionType.META, ActionType.HEADING, ActionType.ALT_TEXT, ActionType.SITEMAP}
    )
    managed_actions = {
        ActionType.SITEMAP: "Shopify generates /sitemap.xml automatically; no change was written",
    }
    preflight_path = "shop.json"

    def _validate(self, credentials: Dict[str, Any]) -> None:
        values = require_fields(self.provider, credentials, ["shop", "accessToken"])
        self._shop = shop_subdomain(values["shop"])
        self._access_token = values["accessToken"]
        self._api_version = str(credentials.get("apiVersion") or "").strip() or self._settings.shopify_api_version

    def _build_client(self) -> CMSHttpClient:
        version = self._api_version
        return CMSHttpClient(
            self.provider.value,
            f"https://{self._shop}.myshopify.com/admin/api/{version}",
            {
                "X-Shopify-Access-Token": self._access_token,
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
        }

    # ------------------------------------------------------------------
    # Target resolution
    # ------------------------------------------------------------------

    def resolve(self, target: str) -> ShopifyResource | None:
        kind, ident, _ = _parse_target(target)
        if kind:
            return self._lookup(kind, ident)
        if not ident:
            return None
        for candidate in _RESOURCES:
            found = self._lookup(candidate, ident)
            if found is not None:
                return found
        return None

    def _lookup(self, kind: str, ident: str) -> ShopifyResource | None:
        endpoint, singular = _RESOURCES[kind]
        if ident.isdigit():
            payload = self.client.get(f"{endpoint}/{ident}.json", allow_missing=True)
            item = payload.get(singular) if isinstance(payload, dict) else None
        else:
            items = as_list(self.client.get(f"{endpoint}.json", params={"handle": ident}), endpoint)
            item = items[0] if items else None
        if isinstance(item, dict) and item.get("id"):
            return ShopifyResource(kind=kind, id=int(item["id"]), data=item)
        return None

    def _require(self, target: str) -> ShopifyResource:
        found = self.resolve(target)
        if found is None:
            raise content_not_found(self.provider.value, target, "product or page")
        return found

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _update_meta(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, MetaPayload)
        if request.target.strip() in HOMEPAGE_TARGETS:
            raise unsupported_action(
                self.provider.value,
                request.action_type.value,
                "homepage meta tags are managed in Online Store preferences",
            )
        item = self._require(request.target)
        existing = self._seo_metafields(item)
        desired: List[Tuple[str, str]] = []
        if payload.title is not None:
            desired.append((TITLE_KEY, payload.title))
        if payload.description is not None:
            desired.append((DESCRIPTION_KEY, payload.description))

        current = {key: str((existing.get(key) or {}).get("value") or "") for key, _ in desired}
        if all(current[key] == value for key, value in desired):
            return self._already_applied(
                request,
                "shopify_metafields",
                resource=item.resource,
                fields={key: None for key, _ in desired},
            )

        # Both tags go out in one resource update.
        body: Dict[str, Any] = {"id": item.id}
        for key, value in desired:
            body[f"metafields_{SEO_NAMESPACE}_{key}"] = value
        self.client.put(f"{item.kind}/{item.id}.json", {item.singular: body})
        return self._record(
            request,
            "shopify_metafields",
            resource=item.resource,
            original=current,
            createdMetafields=[key for key, _ in desired if key not in existing] or None,
        )

    def _seo_metafields(self, item: ShopifyResource) -> Dict[str, Dict[str, Any]]:
        payload = self.client.get(
            f"{item.kind}/{item.id}/metafields.json",
            params={"namespace": SEO_NAMESPACE},
        )
        found: Dict[str, Dict[str, Any]] = {}
        for metafield in as_list(payload, "metafields"):
            if metafield.get("namespace", SEO_NAMESPACE) == SEO_NAMESPACE and metafield.get("key"):
                found[str(metafield["key"])] = metafield
        return found

    def _update_heading(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, HeadingPayload)
        if request.target.strip() in HOMEPAGE_TARGETS:
            raise unsupported_action(
                self.provider.value,
                request.action_type.value,
                "the homepage heading is set in the theme editor",
            )
        item = self._require(request.target)
        current = str(item.data.get("title") or "")
        if current == payload.h1:
            return self._already_applied(request, "shopify_title", resource=item.resource, fields={"title": None})
        self.client.put(
            f"{item.kind}/{item.id}.json",
            {item.singular: {"id": item.id, "title": payload.h1}},
        )
        return self._record(request, "shopify_title", resource=item.resource, original={"title": current})

    def _update_alt_text(self, request: ModificationRequest, payload: ActionPayload) -> RollbackRecord:
        assert isinstance(payload, AltTextPayload)
        kind, ident, image_ref = _parse_target(request.target)
        if kind != "products" or not image_ref:
            raise content_not_found(self.provider.value, request.target, "product image")
        product = self._lookup("products", ident)
        if product is None:
            raise content_not_found(self.provider.value, request.target, "product")
        image = self._find_image(product, image_ref)
        if image is None:
            raise content_not_found(self.provider.value, request.target, "product image")
        image_id = int(image["id"])
        current = str(image.get("alt") or "")
        resource = {"kind": "product_image", "productId": product.id, "id": image_id, "src": image.get("src")}
        if current == payload.alt_text:
            return self._already_applied(request, "shopify_image", resource=resource, fields={"alt": None})
        self.client.put(
            f"products/{product.id}/images/{image_id}.json",
            {"image": {"id": image_id, "alt": payload.alt_text}},
        )
        return self._record(request, "shopify_image", resource=resource, original={"alt": current})

    def _find_image(self, product: ShopifyResource, image_ref: str) -> Dict[str, Any] | None:
        images = as_list(self.client.get(f"products/{product.id}/images.json"), "images")
        for image in images:
            if not image.get("id"):
                continue
            if str(image["id"]) == image_ref or image_ref in str(image.get("src") or ""):
                return image
        return None


def _parse_target(target: str) -> Tuple[str, str, str]:
    """Split a target into ``(kind, handle-or-id, image reference)``."""

    target = target.strip()
    path = urlparse(target).path if "://" in target else target
    segments = [segment for segment in path.split("/") if segment]
    if not segments:
        return "", "", ""
    if segments[0] in _RESOURCES and len(segments) >= 2:
        image_ref = ""
        if segments[0] == "products" and len(segments) >= 4 and segments[2] == "images":
            image_ref = "/".join(segments[3:])
        return segments[0], segments[1], image_ref
    return "", segments[-1], ""


__all__ = ["ShopifyAdapter", "ShopifyResource"]
