"""Utility helpers for sitemod."""
