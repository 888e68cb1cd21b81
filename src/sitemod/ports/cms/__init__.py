"""Ports for CMS provider integrations."""

from .provider import ProviderAdapter

__all__ = ["ProviderAdapter"]
