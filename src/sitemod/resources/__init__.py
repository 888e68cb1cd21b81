"""Packaged resources for sitemod."""
