"""Site modification engine: applies SEO fixes through CMS provider adapters."""

__version__ = "0.3.0"

__all__ = ["__version__"]
