"""Static provider -> adapter mapping."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Type

import requests

from sitemod.adapters.cms.manual import ManualAdapter
from sitemod.adapters.cms.shopify import ShopifyAdapter
from sitemod.adapters.cms.squarespace import SquarespaceAdapter
from sitemod.adapters.cms.webflow import WebflowAdapter
from sitemod.adapters.cms.wordpress import WordPressAdapter
from sitemod.domain.modifications import Provider
from sitemod.ports.cms.provider import ProviderAdapter
from sitemod.settings import RuntimeSettings

ADAPTERS: Dict[Provider, Type[ProviderAdapter]] = {
    Provider.WEBFLOW: WebflowAdapter,
    Provider.WORDPRESS: WordPressAdapter,
    Provider.SHOPIFY: ShopifyAdapter,
    Provider.SQUARESPACE: SquarespaceAdapter,
    Provider.MANUAL: ManualAdapter,
}

_missing = set(Provider) - set(ADAPTERS)
if _missing:
    raise RuntimeError(f"providers without an adapter: {sorted(p.value for p in _missing)}")


def build_adapter(
    provider: Provider,
    credentials: Mapping[str, Any],
    *,
    settings: RuntimeSettings,
    session: requests.Session | None = None,
) -> ProviderAdapter:
    """Instantiate the adapter for ``provider``; credential validation happens here."""

    adapter_cls = ADAPTERS[provider]
    return adapter_cls(credentials, settings=settings, session=session)  # type: ignore[call-arg]


__all__ = ["ADAPTERS", "build_adapter"]
