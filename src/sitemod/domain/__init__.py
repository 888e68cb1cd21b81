"""Domain layer for sitemod."""
