"""CMS provider adapters."""

from sitemod.adapters.cms.http import CMSHttpClient
from sitemod.adapters.cms.manual import ManualAdapter
from sitemod.adapters.cms.registry import ADAPTERS, build_adapter
from sitemod.adapters.cms.shopify import ShopifyAdapter
from sitemod.adapters.cms.squarespace import SquarespaceAdapter
from sitemod.adapters.cms.webflow import WebflowAdapter
from sitemod.adapters.cms.wordpress import WordPressAdapter

__all__ = [
    "ADAPTERS",
    "CMSHttpClient",
    "ManualAdapter",
    "ShopifyAdapter",
    "SquarespaceAdapter",
    "WebflowAdapter",
    "WordPressAdapter",
    "build_adapter",
]
