"""Ports (abstract contracts) for sitemod integrations."""
